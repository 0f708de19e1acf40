"""Async helpers for running blocking file and zip work off the event loop."""

import asyncio
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Callable, TypeVar

# Shared thread pool for blocking zip/file operations
_io_executor = None
_io_executor_lock = threading.Lock()

T = TypeVar("T")


def get_io_executor() -> ThreadPoolExecutor:
    """Get or create the shared executor for blocking I/O."""
    global _io_executor

    with _io_executor_lock:
        if _io_executor is None:
            max_workers = min(32, (os.cpu_count() or 1) * 4)
            _io_executor = ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="itemzip-io"
            )

    return _io_executor


async def run_in_thread_pool(func: Callable[..., T], *args, **kwargs) -> T:
    """Run a blocking function in the shared thread pool."""
    loop = asyncio.get_running_loop()
    executor = get_io_executor()

    if kwargs:
        func = partial(func, **kwargs)
    return await loop.run_in_executor(executor, func, *args)
