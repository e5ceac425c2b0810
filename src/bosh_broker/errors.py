"""Error types raised by the broker."""

from __future__ import annotations

from typing import Optional


class BrokerError(RuntimeError):
    """Base class for every error the broker surfaces to its callers."""

    pass


class ConfigurationError(BrokerError):
    """Raised when plan or template configuration cannot be used."""

    pass


class PlanNotFound(BrokerError):
    def __init__(self, plan_id: str) -> None:
        self.plan_id = plan_id
        super().__init__(f"Unknown plan: {plan_id}")


class InvalidParameters(BrokerError):
    """Raised when request parameters are not a JSON object."""

    pass


class MissingRequiredParameter(BrokerError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Required parameter {name} is not set")


class RenderError(BrokerError):
    def __init__(self, template: str, reason: str) -> None:
        self.template = template
        self.reason = reason
        super().__init__(f"Failed to render template {template}: {reason}")


class DirectorError(BrokerError):
    """Raised for any failure talking to the BOSH director."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class UnknownTaskStatus(BrokerError):
    def __init__(self, status: str) -> None:
        self.status = status
        super().__init__(f"Unknown task status: {status!r}")


class InstanceNotFound(BrokerError):
    def __init__(self, instance_id: str) -> None:
        self.instance_id = instance_id
        super().__init__(f"Service instance {instance_id} does not exist")


class ExecutionError(BrokerError):
    """Raised when a bind or unbind script fails."""

    def __init__(self, path: str, exit_status: int, stderr: str) -> None:
        self.path = path
        self.exit_status = exit_status
        self.stderr = stderr
        super().__init__(f"Script {path} failed with code {exit_status}: {stderr}")


class InvalidBindOutput(ExecutionError):
    """Raised when a bind script does not print a JSON object."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(path, 0, "")
        self.reason = reason
        self.args = (f"Script {path} produced invalid credentials: {reason}",)


class CleanupError(BrokerError):
    """Raised when local deployment artifacts cannot be removed."""

    pass
