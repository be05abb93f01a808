"""Lightweight task execution for non-blocking client calls."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable
import threading

from movie_manager.backend.common.errors import TaskError
from movie_manager.backend.common.logging import get_logger

log = get_logger(__name__)



@dataclass
class TaskSpec:
    fn: Callable[..., Any]
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)
    name: str = "task"


class TaskRunner:
    """Tiny in-process task runner. One attempt per task; failures land on the future."""

    def __init__(self, max_workers: int = 4, *, thread_name_prefix: str = "movie-manager"):
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix=thread_name_prefix,
        )
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, spec: TaskSpec) -> Future:
        with self._lock:
            if self._closed:
                raise TaskError("TaskRunner is closed")

            def _wrapped():
                log.debug("task_start %s", spec.name, extra={"task": spec.name})
                try:
                    result = spec.fn(*spec.args, **spec.kwargs)
                except Exception as e:
                    log.warning("task_fail %s: %s", spec.name, e, extra={"task": spec.name})
                    raise
                log.debug("task_done %s", spec.name, extra={"task": spec.name})
                return result

            return self._executor.submit(_wrapped)

    def close(self, wait: bool = True) -> None:
        with self._lock:
            if not self._closed:
                self._executor.shutdown(wait=wait, cancel_futures=not wait)
                self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close(wait=True)
