"""In-memory store of service instances."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List

from ..errors import InstanceNotFound
from ..params import ParameterSet


@dataclass
class ServiceInstance:
    """A provisioned instance and the director task it is currently running."""

    instance_id: str
    plan_id: str
    parameters: ParameterSet = field(default_factory=dict)
    last_task_id: str = ""
    last_operation: str = ""              # provision | update | deprovision
    task_history: List[str] = field(default_factory=list)

    def record_task(self, operation: str, task_id: str) -> None:
        """Make `task_id` the current task; earlier ones are only kept as history."""
        self.last_operation = operation
        self.last_task_id = task_id
        self.task_history.append(task_id)


class InstanceRegistry:
    """
    Owns every ServiceInstance of the broker process.

    Nothing is persisted: a restart forgets all instances. Operations on one
    instance id are serialized through `locked()`; different ids do not block
    each other.
    """

    def __init__(self) -> None:
        self._instances: Dict[str, ServiceInstance] = {}
        # instance id -> [lock, number of holders and waiters]
        self._locks: Dict[str, List[Any]] = {}
        self._guard = threading.Lock()

    def __contains__(self, instance_id: object) -> bool:
        with self._guard:
            return instance_id in self._instances

    def __len__(self) -> int:
        with self._guard:
            return len(self._instances)

    def put(self, instance: ServiceInstance) -> None:
        with self._guard:
            self._instances[instance.instance_id] = instance

    def get(self, instance_id: str) -> ServiceInstance:
        with self._guard:
            try:
                return self._instances[instance_id]
            except KeyError:
                raise InstanceNotFound(instance_id) from None

    def remove(self, instance_id: str) -> ServiceInstance:
        with self._guard:
            try:
                return self._instances.pop(instance_id)
            except KeyError:
                raise InstanceNotFound(instance_id) from None

    def instance_ids(self) -> List[str]:
        with self._guard:
            return sorted(self._instances)

    @contextmanager
    def locked(self, instance_id: str) -> Iterator[None]:
        """Hold the per-instance lock for the duration of an operation."""
        with self._guard:
            entry = self._locks.setdefault(instance_id, [threading.RLock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[instance_id]
