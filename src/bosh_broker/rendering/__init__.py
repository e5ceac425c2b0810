"""Rendering of manifests, scripts and upload locations from instance parameters."""

from .template import Template
from .loader import PlanTemplates, load_all_templates, load_plan_templates, load_template

__all__ = [
    "Template",
    "PlanTemplates",
    "load_all_templates",
    "load_plan_templates",
    "load_template",
]
