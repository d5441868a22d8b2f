"""Run a worker over many items in parallel and a copier over their results in order.

Each item is handed to ``worker(item, scratch, copy)``, which may use the
scratch object as temporary storage and writes its result into the copy
object.  ``copier(copy)`` then moves that result into some global object.
Workers may run concurrently.  Copiers never overlap and always run in the
order of the items.

Scratch and copy objects are produced from the given samples with
:func:`copy.deepcopy`.  An object that must share state between its copies,
such as a reference to an output vector, can define ``__deepcopy__``.

Either ``worker`` or ``copier`` may be ``None``, in which case that step is
skipped.
"""

from __future__ import annotations

import copy as _copy
import enum
import os
import threading
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Optional, TypeVar

Item = TypeVar("Item")
Worker = Optional[Callable[[Any, Any, Any], None]]
Copier = Optional[Callable[[Any], None]]

DEFAULT_CHUNK_SIZE = 8
DEFAULT_MAX_TASKS = 512


class Strategy(enum.Enum):
    """How items are grouped into tasks."""

    SERIAL = "serial"
    PER_ITEM = "v1"
    BATCHED = "v2"
    CHUNKED = "v3"
    CHUNKED_THREAD_LOCAL = "v4"


def _resolve_threads(n_threads: int | None) -> int:
    if n_threads is None:
        return os.cpu_count() or 1
    if n_threads < 1:
        raise ValueError(f"n_threads must be at least 1, got {n_threads}")
    return n_threads


def _check_positive(name: str, value: int) -> None:
    if value < 1:
        raise ValueError(f"{name} must be at least 1, got {value}")


def _drain(futures: Iterable[Future], copier: Copier) -> None:
    """Wait for each task in order and pass its copy objects to the copier."""
    for future in futures:
        copies = future.result()
        if copier is not None:
            for copy_data in copies:
                copier(copy_data)


def _work_chunk(
    chunk: Sequence[Any],
    worker: Worker,
    scratch: Any,
    sample_copy: Any,
) -> list[Any]:
    copies = [_copy.deepcopy(sample_copy) for _ in chunk]
    if worker is not None:
        for item, copy_data in zip(chunk, copies):
            worker(item, scratch, copy_data)
    return copies


def _chunks(items: Sequence[Any], size: int) -> list[Sequence[Any]]:
    return [items[start : start + size] for start in range(0, len(items), size)]


def run_serial(
    items: Iterable[Any],
    worker: Worker,
    copier: Copier,
    sample_scratch: Any,
    sample_copy: Any,
) -> None:
    """Process all items on the calling thread, reusing one scratch and one copy object."""
    scratch = _copy.deepcopy(sample_scratch)
    copy_data = _copy.deepcopy(sample_copy)
    for item in items:
        if worker is not None:
            worker(item, scratch, copy_data)
        if copier is not None:
            copier(copy_data)


def run_per_item(
    items: Iterable[Any],
    worker: Worker,
    copier: Copier,
    sample_scratch: Any,
    sample_copy: Any,
    n_threads: int | None = None,
) -> None:
    """One task per item, each with its own fresh scratch and copy object."""
    threads = _resolve_threads(n_threads)
    if threads == 1:
        run_serial(items, worker, copier, sample_scratch, sample_copy)
        return

    def task(item: Any) -> list[Any]:
        return _work_chunk((item,), worker, _copy.deepcopy(sample_scratch), sample_copy)

    with ThreadPoolExecutor(max_workers=threads) as executor:
        futures = [executor.submit(task, item) for item in items]
        _drain(futures, copier)


def run_batched(
    items: Iterable[Any],
    worker: Worker,
    copier: Copier,
    sample_scratch: Any,
    sample_copy: Any,
    n_threads: int | None = None,
    max_tasks: int = DEFAULT_MAX_TASKS,
) -> None:
    """Like :func:`run_per_item`, but submit at most ``max_tasks`` items at a time."""
    threads = _resolve_threads(n_threads)
    _check_positive("max_tasks", max_tasks)
    if threads == 1:
        run_serial(items, worker, copier, sample_scratch, sample_copy)
        return

    def task(item: Any) -> list[Any]:
        return _work_chunk((item,), worker, _copy.deepcopy(sample_scratch), sample_copy)

    with ThreadPoolExecutor(max_workers=threads) as executor:
        pending: list[Future] = []
        for item in items:
            if len(pending) == max_tasks:
                _drain(pending, copier)
                pending = []
            pending.append(executor.submit(task, item))
        _drain(pending, copier)


def run_chunked(
    items: Iterable[Any],
    worker: Worker,
    copier: Copier,
    sample_scratch: Any,
    sample_copy: Any,
    n_threads: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    """One task per chunk of ``chunk_size`` items, each chunk with its own scratch."""
    threads = _resolve_threads(n_threads)
    _check_positive("chunk_size", chunk_size)
    if threads == 1:
        run_serial(items, worker, copier, sample_scratch, sample_copy)
        return

    def task(chunk: Sequence[Any]) -> list[Any]:
        return _work_chunk(chunk, worker, _copy.deepcopy(sample_scratch), sample_copy)

    with ThreadPoolExecutor(max_workers=threads) as executor:
        futures = [executor.submit(task, chunk) for chunk in _chunks(list(items), chunk_size)]
        _drain(futures, copier)


def run_chunked_thread_local(
    items: Iterable[Any],
    worker: Worker,
    copier: Copier,
    sample_scratch: Any,
    sample_copy: Any,
    n_threads: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    """Chunked tasks sharing one scratch object per thread.

    Chunks are only formed when there are at least three chunks per thread;
    otherwise every item becomes its own task.
    """
    threads = _resolve_threads(n_threads)
    _check_positive("chunk_size", chunk_size)
    if threads == 1:
        run_serial(items, worker, copier, sample_scratch, sample_copy)
        return

    all_items = list(items)
    real_chunk_size = 1 if len(all_items) // chunk_size < 3 * threads else chunk_size
    local = threading.local()

    def task(chunk: Sequence[Any]) -> list[Any]:
        scratch = getattr(local, "scratch", None)
        if scratch is None:
            scratch = _copy.deepcopy(sample_scratch)
            local.scratch = scratch
        return _work_chunk(chunk, worker, scratch, sample_copy)

    with ThreadPoolExecutor(max_workers=threads) as executor:
        futures = [
            executor.submit(task, chunk) for chunk in _chunks(all_items, real_chunk_size)
        ]
        _drain(futures, copier)


def run(
    items: Iterable[Any],
    worker: Worker,
    copier: Copier,
    sample_scratch: Any,
    sample_copy: Any,
    strategy: Strategy | str = Strategy.PER_ITEM,
    n_threads: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    """Dispatch to the runner selected by ``strategy``."""
    strategy = Strategy(strategy)
    if strategy is Strategy.SERIAL:
        run_serial(items, worker, copier, sample_scratch, sample_copy)
    elif strategy is Strategy.PER_ITEM:
        run_per_item(items, worker, copier, sample_scratch, sample_copy, n_threads)
    elif strategy is Strategy.BATCHED:
        run_batched(items, worker, copier, sample_scratch, sample_copy, n_threads)
    elif strategy is Strategy.CHUNKED:
        run_chunked(
            items, worker, copier, sample_scratch, sample_copy, n_threads, chunk_size
        )
    else:
        run_chunked_thread_local(
            items, worker, copier, sample_scratch, sample_copy, n_threads, chunk_size
        )