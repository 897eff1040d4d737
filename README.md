# taskweave

taskweave is a small task runtime built from plain threads and queues. Work is
written as pollable futures (objects with a `poll(waker)` method) or as
coroutines. Each one is spawned onto a high-priority or a low-priority queue and
run by pools of worker threads. A worker takes from its own queue first and from
the other queue when its own is empty.

The package also holds self-contained modules that show the building blocks:
hand-written futures and wakers, shared state behind locks, blocking and
non-blocking work, threads and condition variables, child processes, sockets and
a minimal HTTP client.

It needs nothing beyond the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## The runtime

`taskweave.runtime` provides the prioritised runtime.

```python
from taskweave.runtime import BackgroundProcess, FutureType, Runtime, join, spawn_task

runtime = Runtime().with_low_num(2).with_high_num(4)
runtime.run()
try:
    spawn_task(BackgroundProcess()).detach()
    first = spawn_task(some_future, FutureType.HIGH)
    second = spawn_task(other_future)          # low priority by default
    results = join(first, second)
finally:
    runtime.shutdown()
```

- `FutureType.HIGH` and `FutureType.LOW` name the queue a task goes to.
- `Runtime(high_num, low_num)` sets the worker counts. `high_num` defaults to the
  number of CPUs minus two (never below zero) and `low_num` to one.
  `with_high_num` and `with_low_num` change them and return the runtime.
- `Runtime.run` starts the workers and makes the runtime the one `spawn_task`
  uses. Used as a context manager, a `Runtime` runs on entry and shuts down on
  exit. `Runtime.shutdown` stops the workers and waits for them.
- `Runtime.spawn(future, order)` and `spawn_task(future, order)` schedule a
  future and return a `Task`. `spawn_task` raises `RuntimeError` when no runtime
  is running.
- `Task.result(timeout)` waits for the value or raises the future's error;
  it raises `TimeoutError` if the timeout passes and `RuntimeError` for a
  detached task. `Task.done` tells whether it has finished. `Task.detach` lets a
  task run on with nobody waiting for it.
- `join(*tasks)` waits for each task and returns their values in order.
  `try_join(*tasks)` does the same but puts a failed task's exception in the list
  instead of raising it.
- A future that is not ready returns `PENDING` and calls `Waker.wake` when it
  wants to be polled again. `BackgroundProcess` never finishes; each poll prints
  a line, sleeps `interval` seconds (one by default) and asks to be polled again.

## Other executors

- `taskweave.simple_queue.SingleQueueExecutor(workers)`: one queue served by a
  set number of workers, with `spawn`, `queue_len` and `shutdown`. `shutdown`
  lets queued work finish first.
- `taskweave.labelled.LabelledExecutor(high_workers, low_workers, stealing)`:
  the queue is taken from the future's own `order` attribute, as on
  `OrderedCounterFuture`; a future without one is refused with `TypeError`. With
  `stealing` on, an idle worker takes from the other queue.
- `taskweave.fixed_pool.FixedPoolExecutor(workers_per_queue)`: the same number
  of workers on each queue (two by default), with `spawn`, `join`, `try_join` and
  `shutdown`.

Each of them is also a context manager that shuts down on exit.

## Futures and shared state

- `taskweave.futures`: `CounterFuture` and `SimpleFuture`, which finish after
  three polls; `SelfReferential`, whose `show` prints and returns its string; and
  `RemoteFuture`, which stays pending until another thread calls
  `trigger(data)` and then finishes with the data decoded as UTF-8.
- `taskweave.shared_counter`: `SharedData`, `CounterType`,
  `LockingCounterFuture` and the `count` coroutine (for asyncio), which move one
  counter up and down, giving way while its lock is held.
- `taskweave.file_log`: `get_handle` opens a file for appending behind a lock,
  `AsyncWriteFuture` writes one line once it gets the lock, and `write_log`
  spawns such a write on the running runtime.
- `taskweave.cooking`: the asyncio coffee-and-toast steps `prep_coffee_mug`,
  `make_coffee` and `make_toast`, and `run_with_timeout`, which runs
  `slow_task` under a deadline and returns `None` when it runs out. A `scale`
  factor shortens every delay.

## Threads, processes and I/O

- `taskweave.concurrency`: `fibonacci`, `run_fib_threads`, `condvar_demo`,
  `run_tasks` and `echo_lines`.
- `taskweave.processes`: `run_child_script` checks a Python script with
  `py_compile` and runs it as a child; `spawn_connections` runs a command several
  times at once and returns a `ConnectionResult` for each; `fetch_text` returns a
  page's body or raises `HttpStatusError` for a status outside 2xx.
- `taskweave.sockets`: `ServerFuture` waits for a connection on a listening
  socket and finishes with the text the client sends; `Channel` is an unbounded
  queue whose `receive` blocks until `send` delivers a message.
- `taskweave.http_client`: `CustomConnector.connect` opens a `CustomStream` to
  an `http` or `https` URI (TLS for https), and `fetch(url)` sends a GET request
  and returns an `HttpResponse` with status, reason, headers and body.

## Commands

Each module can be started from the command line; `--help` lists its options.

```
taskweave-runtime       # demo tasks on the prioritised runtime (--high, --low)
taskweave-queue         # demo tasks on one shared queue (--workers)
taskweave-labelled      # labelled counter futures (--high, --low, --stealing)
taskweave-pool          # demo tasks on a fixed pool (--workers)
taskweave-futures       # counter futures and a remotely woken future
taskweave-counter       # two futures sharing one counter
taskweave-log           # write login.txt and logout.txt concurrently (--dir)
taskweave-cooking       # breakfast or timeout demo (--scale, --timeout)
taskweave-concurrency   # fib, condvar, tasks, processes, task, echo
taskweave-fetch         # fetch a URL on the runtime and print the body
taskweave-sockets       # send a message to a polled listening socket
taskweave-processes     # child, connection, spawner, server, requests, login
```

## What it does not do

- The runtime has no I/O reactor: a pending future is simply polled again on a
  worker thread, and blocking work inside a future holds that worker.
- The HTTP client sends GET requests only, one connection per request, and does
  not follow redirects. `fetch` itself runs on the calling thread; only the
  `taskweave-fetch` command runs it as a runtime task.