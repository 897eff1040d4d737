import io

import pytest

from taskweave.concurrency import (
    condvar_demo,
    echo_lines,
    fibonacci,
    main,
    run_fib_threads,
    run_tasks,
)


def test_fibonacci_base_cases():
    assert fibonacci(0) == 0
    assert fibonacci(1) == 1


def test_fibonacci_known_value():
    assert fibonacci(10) == 55


@pytest.mark.parametrize("n", range(2, 40))
def test_fibonacci_recurrence(n):
    assert fibonacci(n) == fibonacci(n - 1) + fibonacci(n - 2)


def test_fibonacci_rejects_negative():
    with pytest.raises(ValueError):
        fibonacci(-1)


def test_run_fib_threads_all_agree(capsys):
    results = run_fib_threads(20, 4)
    assert results == [fibonacci(20)] * 4
    assert len(capsys.readouterr().out.splitlines()) == 4


def test_run_fib_threads_rejects_negative_count():
    with pytest.raises(ValueError):
        run_fib_threads(5, -1)


def test_condvar_demo_receives_every_value():
    values = [False, True, False, True]
    assert condvar_demo(values, 0.05) == values


def test_condvar_demo_with_no_values():
    assert condvar_demo([], 0.0) == []


def test_run_tasks_takes_at_least_the_delays(capsys):
    elapsed = run_tasks(3, 0.01)
    assert elapsed >= 0.03
    assert capsys.readouterr().out.count("Running task...") == 3


def test_echo_lines():
    out = io.StringIO()
    assert echo_lines(io.StringIO("a\nb\r\nc"), out) == 3
    assert out.getvalue() == "Received: a\nReceived: b\nReceived: c\n"


def test_echo_lines_empty_stream():
    out = io.StringIO()
    assert echo_lines(io.StringIO(""), out) == 0
    assert out.getvalue() == ""


def test_main_task_runs_five_numbered_tasks(capsys):
    assert main(["task", "6", "--delay", "0"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 5
    assert lines[0].startswith("Task 6 completed in process: ")
    assert lines[-1].startswith("Task 10 completed in process: ")