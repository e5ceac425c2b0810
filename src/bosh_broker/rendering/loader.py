"""Load the templates a plan deploys with."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from ..config import PlanConfig
from ..errors import ConfigurationError, RenderError
from .template import Template

logger = logging.getLogger(__name__)


@dataclass
class PlanTemplates:
    """Prepared templates for one plan."""

    manifest: Template
    bind: Template
    stemcell: Template
    release: Template
    unbind: Optional[Template] = None


def load_template(path: str, templates_dir: Union[str, Path]) -> Optional[Template]:
    """Read a template file below `templates_dir`.

    An empty reference means the artifact is not configured and yields None.
    """
    if not path:
        return None
    file_path = Path(templates_dir) / path
    try:
        source = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read template {file_path}: {exc}") from exc
    return _checked(Template(source, name=path))


def _checked(template: Template) -> Template:
    try:
        template.validate()
    except RenderError as exc:
        raise ConfigurationError(str(exc)) from exc
    return template


def _require(template: Optional[Template], plan: PlanConfig, field_name: str) -> Template:
    if template is None:
        raise ConfigurationError(f"Plan {plan.id} has no {field_name} configured")
    return template


def load_plan_templates(plan: PlanConfig, templates_dir: Union[str, Path]) -> PlanTemplates:
    manifest = load_template(plan.manifest_template, templates_dir)
    bind = load_template(plan.bind_template, templates_dir)
    unbind = load_template(plan.unbind_template, templates_dir)
    stemcell = _checked(Template(plan.stemcell, name=f"{plan.id}/stemcell")) if plan.stemcell else None
    release = _checked(Template(plan.release, name=f"{plan.id}/release")) if plan.release else None

    templates = PlanTemplates(
        manifest=_require(manifest, plan, "manifest_template"),
        bind=_require(bind, plan, "bind_template"),
        stemcell=_require(stemcell, plan, "stemcell"),
        release=_require(release, plan, "release"),
        unbind=unbind,
    )
    logger.debug("Loaded templates for plan %s", plan.id)
    return templates


def load_all_templates(
    plans: Mapping[str, PlanConfig],
    templates_dir: Union[str, Path],
) -> Dict[str, PlanTemplates]:
    return {plan_id: load_plan_templates(plan, templates_dir) for plan_id, plan in plans.items()}
