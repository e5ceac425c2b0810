"""Merge caller parameters with plan defaults, generated values and system values."""

from __future__ import annotations

import copy
import json
import logging
import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from ..config import PlanConfig
from ..errors import InvalidParameters, MissingRequiredParameter

logger = logging.getLogger(__name__)

# Any JSON value
ParamValue = Union[str, int, float, bool, None, List[Any], Dict[str, Any]]
ParameterSet = Dict[str, ParamValue]

DEPLOYMENT_PREFIX = "deployment"

SYSTEM_KEYS = (
    "deployment_name",
    "instance_id",
    "director_uuid",
    "bosh_user",
    "bosh_password",
)


def deployment_name_for(instance_id: str) -> str:
    return DEPLOYMENT_PREFIX + instance_id


def parse_raw_parameters(raw: Union[bytes, str, Mapping[str, Any], None]) -> ParameterSet:
    """Turn the raw request parameters into a parameter map.

    Accepts the undecoded JSON body (bytes or str), an already decoded
    mapping, or nothing at all. Anything that is not a JSON object is
    rejected with InvalidParameters.
    """
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        if not raw.strip():
            return {}
        data = json.loads(raw)
    except ValueError as exc:
        raise InvalidParameters(f"Parameters are not valid JSON: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidParameters(
            f"Parameters must be a JSON object, got {type(data).__name__}"
        )
    return data


class ParameterResolver:
    """Builds the parameter set every template of an instance is rendered with."""

    def __init__(
        self,
        director_uuid: str,
        bosh_user: str,
        bosh_password: Optional[str],
        *,
        uuid_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    ) -> None:
        self.director_uuid = director_uuid
        self.bosh_user = bosh_user
        self.bosh_password = bosh_password
        self._uuid_factory = uuid_factory

    def resolve(
        self,
        instance_id: str,
        caller_params: Optional[Mapping[str, ParamValue]],
        plan: PlanConfig,
    ) -> ParameterSet:
        """Return a new, fully resolved parameter set.

        Keys already present are never replaced by defaults or generated
        values, so resolving an already resolved set is a no-op. The system
        keys are always overwritten.
        """
        params: ParameterSet = dict(caller_params or {})

        for spec in plan.params:
            if spec.name in params:
                continue
            if spec.default is not None:
                params[spec.name] = copy.deepcopy(spec.default)
            elif spec.random:
                params[spec.name] = str(self._uuid_factory())
                logger.debug("Generated value for parameter %s", spec.name)
            elif spec.optional:
                continue
            else:
                raise MissingRequiredParameter(spec.name)

        if plan.update and "update" not in params:
            params["update"] = copy.deepcopy(plan.update)

        params["deployment_name"] = deployment_name_for(instance_id)
        params["instance_id"] = instance_id
        params["director_uuid"] = self.director_uuid
        params["bosh_user"] = self.bosh_user
        params["bosh_password"] = self.bosh_password
        return params
