"""Placeholder templates rendered with instance parameters."""

from __future__ import annotations

import json
import logging
import os
import string
from pathlib import Path
from typing import Any, Mapping, Union

from ..errors import RenderError

logger = logging.getLogger(__name__)


class _ParamFormatter(string.Formatter):
    """str.format semantics, with JSON-style output for non-string values.

    Lists and dicts are emitted as JSON, which YAML manifests accept in flow
    style. Booleans and None follow JSON/YAML spelling.
    """

    def format_field(self, value: Any, format_spec: str) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if value is None:
            return "null"
        if isinstance(value, (dict, list, tuple)):
            return json.dumps(value, sort_keys=True)
        return super().format_field(value, format_spec)


_FORMATTER = _ParamFormatter()


class Template:
    """A template source such as a manifest, a script or an upload location."""

    def __init__(self, source: str, name: str = "<inline>") -> None:
        self.source = source
        self.name = name

    def __repr__(self) -> str:
        return f"Template(name={self.name!r})"

    def validate(self) -> None:
        """Check the placeholder syntax without rendering."""
        try:
            for _ in _FORMATTER.parse(self.source):
                pass
        except ValueError as exc:
            raise RenderError(self.name, str(exc)) from exc

    def render(self, params: Mapping[str, Any]) -> bytes:
        try:
            text = _FORMATTER.vformat(self.source, (), params)
        except KeyError as exc:
            raise RenderError(self.name, f"unresolved placeholder {exc}") from exc
        except IndexError as exc:
            raise RenderError(self.name, "positional placeholders are not supported") from exc
        except (ValueError, AttributeError, TypeError) as exc:
            raise RenderError(self.name, str(exc)) from exc
        return text.encode("utf-8")

    def render_text(self, params: Mapping[str, Any]) -> str:
        return self.render(params).decode("utf-8").strip()

    def render_to_file(
        self,
        params: Mapping[str, Any],
        path: Union[str, Path],
        mode: int,
    ) -> Path:
        """Render and write to `path` with exactly `mode` permission bits."""
        data = self.render(params)
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        # umask may have masked bits at creation time
        os.chmod(target, mode)
        logger.debug("Rendered %s to %s (mode %o)", self.name, target, mode)
        return target
