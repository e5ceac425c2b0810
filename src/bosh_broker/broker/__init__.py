"""Service broker operations and catalog."""

from .models import (
    Binding,
    LastOperation,
    OperationResult,
    OperationState,
    ServiceDefinition,
    ServicePlan,
)
from .catalog import build_catalog
from .orchestrator import ServiceBroker, operation_state_for

__all__ = [
    "Binding",
    "LastOperation",
    "OperationResult",
    "OperationState",
    "ServiceDefinition",
    "ServicePlan",
    "build_catalog",
    "ServiceBroker",
    "operation_state_for",
]
