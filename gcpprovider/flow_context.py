"""Adding tasks to a flow graph with logging, timeouts and state persistence."""

from __future__ import annotations

import contextvars
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, Tuple, Union

from gcpprovider.flow import Graph, Task, TaskFn
from gcpprovider.whiteboard import FlatMap

Logger = Union[logging.Logger, logging.LoggerAdapter]
FlowStatePersistor = Callable[[FlatMap], None]

_task_log: contextvars.ContextVar[Optional[Logger]] = contextvars.ContextVar(
    "gcpprovider_task_log", default=None
)


class StateExporter(Protocol):
    """Knows how to export internal state to a flat string map."""

    def current_generation(self) -> int: ...

    def export_as_flat_map(self) -> FlatMap: ...


@dataclass(frozen=True)
class TaskOption:
    """Options for a task added to a flow graph."""

    dependencies: Tuple[str, ...] = field(default_factory=tuple)
    timeout: float = 0.0
    do_if: Optional[bool] = None


def dependencies(*args: str) -> TaskOption:
    """Option naming the tasks a task depends on."""
    return TaskOption(dependencies=tuple(args))


def timeout(seconds: float) -> TaskOption:
    """Option limiting how long a task may run."""
    return TaskOption(timeout=seconds)


def do_if(condition: bool) -> TaskOption:
    """Option running a task only if condition holds."""
    return TaskOption(do_if=bool(condition))


def _with_timeout(fn: TaskFn, seconds: float) -> TaskFn:
    def run() -> Any:
        ctx = contextvars.copy_context()
        outcome: dict = {}

        def target() -> None:
            try:
                outcome["result"] = ctx.run(fn)
            except BaseException as exc:  # re-raised in the calling thread
                outcome["error"] = exc

        worker = threading.Thread(target=target, daemon=True)
        worker.start()
        worker.join(seconds)
        if worker.is_alive():
            raise TimeoutError(f"task did not finish within {seconds}s")
        if "error" in outcome:
            raise outcome["error"]
        return outcome.get("result")

    return run


class BasicFlowContext:
    """Adds wrapped tasks to flow graphs and persists state after each task."""

    def __init__(
        self,
        log: Logger,
        exporter: StateExporter,
        persistor: Optional[FlowStatePersistor] = None,
        persist_interval: float = 10.0,
    ) -> None:
        self.log = log
        self.persist_interval = persist_interval
        self._exporter = exporter
        self._persistor = persistor
        self._lock = threading.Lock()
        self._last_persisted_generation = 0
        self._last_persisted_at: Optional[float] = None

    def persist_state(self, force: bool) -> None:
        """Persist the state if it changed, and either force is set or the interval has passed."""
        with self._lock:
            now = time.monotonic()
            if (
                not force
                and self._last_persisted_at is not None
                and self._last_persisted_at + self.persist_interval > now
            ):
                return
            generation = self._exporter.current_generation()
            if generation == self._last_persisted_generation:
                return
            if self._persistor is not None:
                self._persistor(self._exporter.export_as_flat_map())
            self._last_persisted_generation = generation
            self._last_persisted_at = time.monotonic()

    def log_from_context(self) -> Logger:
        """Return the logger of the running task, or the context's own logger."""
        log = _task_log.get()
        return log if log is not None else self.log

    def add_task(self, graph: Graph, name: str, fn: TaskFn, *args: TaskOption) -> str:
        """Add fn as a task wrapped with logging, timeout and persistence; return its id."""
        deps: list[str] = []
        limit = 0.0
        condition: Optional[bool] = None
        for opt in args:
            deps.extend(opt.dependencies)
            if opt.timeout > 0:
                limit = opt.timeout
            if opt.do_if is not None:
                condition = (True if condition is None else condition) and opt.do_if

        tuned = _with_timeout(fn, limit) if limit > 0 else fn
        task = Task(
            name=name,
            fn=self._wrap(graph.name, name, tuned),
            dependencies=tuple(deps),
            skip_if=condition is not None and not condition,
        )
        return graph.add(task)

    def _wrap(self, flow_name: str, task_name: str, fn: TaskFn) -> TaskFn:
        def run() -> None:
            adapter = logging.LoggerAdapter(self.log, {"flow": flow_name, "task": task_name})
            token = _task_log.set(adapter)
            try:
                error: Optional[Exception] = None
                try:
                    fn()
                except Exception as exc:
                    error = RuntimeError(f"failed to {task_name}: {exc}")
                    error.__cause__ = exc
                try:
                    self.persist_state(False)
                except Exception as perr:
                    if error is not None:
                        self.log.error("persisting state failed: %s", perr)
                    else:
                        error = perr
                if error is not None:
                    raise error
            finally:
                _task_log.reset(token)

        return run