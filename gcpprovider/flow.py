"""A small dependency graph of tasks that runs them in order and gathers their errors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Sequence, Tuple

TaskFn = Callable[[], Any]


class FlowError(Exception):
    """Raised when one or more tasks of a flow failed."""

    def __init__(self, flow_name: str, errors: Sequence[Tuple[str, BaseException]]) -> None:
        self.flow_name = flow_name
        self.errors: List[Tuple[str, BaseException]] = list(errors)
        details = ", ".join(f'task "{name}" failed: {exc}' for name, exc in self.errors)
        super().__init__(f'flow "{flow_name}" encountered task errors: [{details}]')


@dataclass(frozen=True)
class Task:
    """A named unit of work with the names of the tasks it depends on."""

    name: str
    fn: TaskFn
    dependencies: Tuple[str, ...] = field(default_factory=tuple)
    skip_if: bool = False


class Graph:
    """A set of tasks linked by dependencies."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._tasks: Dict[str, Task] = {}

    def add(self, task: Task) -> str:
        """Add a task and return its id; dependencies must already be in the graph."""
        if task.name in self._tasks:
            raise ValueError(f'task "{task.name}" already exists in graph "{self.name}"')
        missing = [dep for dep in task.dependencies if dep not in self._tasks]
        if missing:
            raise ValueError(
                f'task "{task.name}" depends on unknown tasks: {", ".join(missing)}'
            )
        self._tasks[task.name] = Task(
            name=task.name,
            fn=task.fn,
            dependencies=tuple(task.dependencies),
            skip_if=task.skip_if,
        )
        return task.name

    def compile(self) -> "Flow":
        """Return a runnable flow of the tasks added so far."""
        return Flow(self.name, list(self._tasks.values()))


class Flow:
    """A compiled graph that can be run any number of times."""

    def __init__(self, name: str, tasks: Sequence[Task]) -> None:
        self.name = name
        self._tasks = list(tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def run(self) -> None:
        """Run all tasks in dependency order.

        Skipped tasks count as done. A failed task keeps its dependents from
        running, while independent tasks still run. All failures are raised
        together as a FlowError.
        """
        failed: set[str] = set()
        errors: List[Tuple[str, BaseException]] = []
        for task in self._tasks:
            if any(dep in failed for dep in task.dependencies):
                failed.add(task.name)
                continue
            if task.skip_if:
                continue
            try:
                task.fn()
            except Exception as exc:
                errors.append((task.name, exc))
                failed.add(task.name)
        if errors:
            raise FlowError(self.name, errors)