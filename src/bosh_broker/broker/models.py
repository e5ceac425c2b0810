"""Data models returned by the broker operations."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class OperationState(Enum):
    """Operation state as reported to the platform."""
    IN_PROGRESS = "in progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class OperationResult:
    """Answer to provision/update/deprovision: the director task now in flight."""
    instance_id: str
    operation: str
    task_id: str
    is_async: bool = True


@dataclass
class LastOperation:
    state: OperationState
    description: str = ""
    task_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.state.value, "description": self.description}


@dataclass
class Binding:
    binding_id: str
    credentials: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"credentials": self.credentials}


@dataclass
class ServicePlan:
    id: str
    name: str
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "description": self.description}


@dataclass
class ServiceDefinition:
    """The single service this broker publishes in its catalog."""
    id: str
    name: str
    description: str
    bindable: bool = True
    plan_updateable: bool = False
    plans: List[ServicePlan] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "bindable": self.bindable,
            "plan_updateable": self.plan_updateable,
            "plans": [plan.to_dict() for plan in self.plans],
        }
