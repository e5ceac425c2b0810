"""Instance registry."""

from .store import InstanceRegistry, ServiceInstance

__all__ = ["InstanceRegistry", "ServiceInstance"]
