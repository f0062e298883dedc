"""Lock modes for singleton construction.

Two threads request the same singleton while its factory is still running:

1. ``LockMode.THREAD`` (the default) makes the second thread wait, so the
   factory runs once.
2. ``LockMode.NONE`` lets both threads run the factory; the first stored
   instance wins and both threads still receive it.
"""

from __future__ import annotations

import threading
import time

from diweave import Container, DependencyConfiguration, LockMode


class ReportCache:
    pass


def _singleton_two_thread_stats(*, lock_mode: LockMode) -> tuple[int, bool]:
    calls = 0
    calls_lock = threading.Lock()
    factory_started = threading.Event()
    factory_release = threading.Event()
    results: list[object | None] = [None, None]

    def factory() -> ReportCache:
        nonlocal calls
        with calls_lock:
            calls += 1
            factory_started.set()
        factory_release.wait(timeout=2.0)
        return ReportCache()

    configuration = DependencyConfiguration()
    configuration.register_singleton(ReportCache, factory=factory)
    container = Container(configuration, lock_mode=lock_mode)

    def worker(index: int) -> None:
        results[index] = container.resolve(ReportCache)

    thread_0 = threading.Thread(target=worker, args=(0,))
    thread_0.start()

    if not factory_started.wait(timeout=2.0):
        msg = "Factory was not called within timeout."
        raise RuntimeError(msg)

    thread_1 = threading.Thread(target=worker, args=(1,))
    thread_1.start()

    deadline = time.monotonic() + 0.5
    while True:
        with calls_lock:
            current_calls = calls
        if current_calls >= 2 or time.monotonic() >= deadline:
            break
        time.sleep(0.001)

    factory_release.set()

    for thread in (thread_0, thread_1):
        thread.join(timeout=2.0)
        if thread.is_alive():
            msg = "Worker thread did not finish within timeout."
            raise RuntimeError(msg)

    if results[0] is None or results[1] is None:
        msg = "Worker threads did not store resolution results."
        raise RuntimeError(msg)

    with calls_lock:
        total_calls = calls

    return total_calls, results[0] is results[1]


def main() -> None:
    thread_calls, thread_shared = _singleton_two_thread_stats(lock_mode=LockMode.THREAD)
    print(
        f"thread=calls={thread_calls} shared={thread_shared}",
    )  # => thread=calls=1 shared=True

    none_calls, none_shared = _singleton_two_thread_stats(lock_mode=LockMode.NONE)
    print(
        f"none=calls={none_calls} shared={none_shared}",
    )  # => none=calls=2 shared=True


if __name__ == "__main__":
    main()
