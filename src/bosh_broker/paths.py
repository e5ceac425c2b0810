"""Filesystem layout for per-instance deployment artifacts.

Everything for one instance lives under deployments/<instance_id>/:
- manifest.yml              # rendered deployment manifest
- <binding_id>_bind.sh      # rendered bind script
- <binding_id>_unbind.sh    # rendered unbind script
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

MANIFEST_FILE = "manifest.yml"
MANIFEST_MODE = 0o660
SCRIPT_MODE = 0o770


def _checked(identifier: str, kind: str) -> str:
    if not identifier or identifier in (".", "..") or "/" in identifier or "\\" in identifier:
        raise ValueError(f"Invalid {kind}: {identifier!r}")
    return identifier


class DeploymentPaths:
    """Resolves artifact paths below a deployments root."""

    def __init__(self, root: Union[str, Path] = "deployments") -> None:
        self.root = Path(root)

    def instance_dir(self, instance_id: str) -> Path:
        return self.root / _checked(instance_id, "instance id")

    def manifest(self, instance_id: str) -> Path:
        return self.instance_dir(instance_id) / MANIFEST_FILE

    def bind_script(self, instance_id: str, binding_id: str) -> Path:
        return self.instance_dir(instance_id) / f"{_checked(binding_id, 'binding id')}_bind.sh"

    def unbind_script(self, instance_id: str, binding_id: str) -> Path:
        return self.instance_dir(instance_id) / f"{_checked(binding_id, 'binding id')}_unbind.sh"
