"""Parameter resolution for service instances."""

from .resolver import (
    DEPLOYMENT_PREFIX,
    SYSTEM_KEYS,
    ParameterResolver,
    ParameterSet,
    ParamValue,
    deployment_name_for,
    parse_raw_parameters,
)

__all__ = [
    "DEPLOYMENT_PREFIX",
    "SYSTEM_KEYS",
    "ParameterResolver",
    "ParameterSet",
    "ParamValue",
    "deployment_name_for",
    "parse_raw_parameters",
]
