"""Tests for parameter resolution."""

import uuid

import pytest

from bosh_broker.config import ParamSpec, PlanConfig
from bosh_broker.errors import InvalidParameters, MissingRequiredParameter
from bosh_broker.params import (
    SYSTEM_KEYS,
    ParameterResolver,
    deployment_name_for,
    parse_raw_parameters,
)


def _plan(*params: ParamSpec, update=None) -> PlanConfig:
    return PlanConfig(id="plan-1", name="Plan 1", params=tuple(params), update=update or {})


def _resolver(**kwargs) -> ParameterResolver:
    return ParameterResolver("director-uuid", "admin", "secret", **kwargs)


class TestResolve:
    def test_default_applied_when_absent(self):
        plan = _plan(ParamSpec("version", default="1.2"))
        params = _resolver().resolve("abc", {}, plan)
        assert params["version"] == "1.2"

    def test_caller_value_wins_over_default(self):
        plan = _plan(ParamSpec("version", default="1.2"))
        params = _resolver().resolve("abc", {"version": "2.0"}, plan)
        assert params["version"] == "2.0"

    def test_random_value_generated(self):
        fixed = uuid.UUID("12345678-1234-5678-1234-567812345678")
        plan = _plan(ParamSpec("password", random=True))
        params = _resolver(uuid_factory=lambda: fixed).resolve("abc", None, plan)
        assert params["password"] == str(fixed)

    def test_default_takes_precedence_over_random(self):
        plan = _plan(ParamSpec("password", default="fixed", random=True))
        params = _resolver().resolve("abc", {}, plan)
        assert params["password"] == "fixed"

    def test_optional_left_unset(self):
        plan = _plan(ParamSpec("disk", optional=True))
        params = _resolver().resolve("abc", {}, plan)
        assert "disk" not in params

    def test_missing_required_names_parameter(self):
        plan = _plan(ParamSpec("version", default="1"), ParamSpec("network"))
        with pytest.raises(MissingRequiredParameter) as excinfo:
            _resolver().resolve("abc", {}, plan)
        assert excinfo.value.name == "network"
        assert "network" in str(excinfo.value)

    def test_failure_does_not_touch_caller_params(self):
        caller = {"existing": 1}
        plan = _plan(ParamSpec("version", default="1"), ParamSpec("network"))
        with pytest.raises(MissingRequiredParameter):
            _resolver().resolve("abc", caller, plan)
        assert caller == {"existing": 1}

    def test_system_keys_override_caller_values(self):
        caller = {key: "spoofed" for key in SYSTEM_KEYS}
        params = _resolver().resolve("abc", caller, _plan())
        assert params["deployment_name"] == "deploymentabc"
        assert params["instance_id"] == "abc"
        assert params["director_uuid"] == "director-uuid"
        assert params["bosh_user"] == "admin"
        assert params["bosh_password"] == "secret"

    def test_resolution_is_idempotent(self):
        counter = iter(range(100))
        resolver = _resolver(uuid_factory=lambda: uuid.UUID(int=next(counter)))
        plan = _plan(
            ParamSpec("version", default="1.2"),
            ParamSpec("password", random=True),
            ParamSpec("disk", optional=True),
        )
        first = resolver.resolve("abc", {"extra": {"nested": [1, 2]}}, plan)
        second = resolver.resolve("abc", first, plan)
        assert second == first

    def test_update_policy_applied_as_default(self):
        plan = _plan(update={"canaries": 1})
        params = _resolver().resolve("abc", {}, plan)
        assert params["update"] == {"canaries": 1}

        params = _resolver().resolve("abc", {"update": {"canaries": 3}}, plan)
        assert params["update"] == {"canaries": 3}

    def test_structured_values_are_preserved(self):
        plan = _plan(ParamSpec("limits", default={"cpu": 2, "tags": ["a"]}))
        params = _resolver().resolve("abc", {"enabled": True, "ratio": 0.5}, plan)
        assert params["limits"] == {"cpu": 2, "tags": ["a"]}
        assert params["enabled"] is True
        assert params["ratio"] == 0.5

    def test_structured_defaults_are_not_shared_between_instances(self):
        plan = _plan(ParamSpec("limits", default={"tags": ["a"]}), update={"canaries": 1})
        first = _resolver().resolve("abc", {}, plan)
        first["limits"]["tags"].append("b")
        first["update"]["canaries"] = 5

        second = _resolver().resolve("def", {}, plan)
        assert second["limits"] == {"tags": ["a"]}
        assert second["update"] == {"canaries": 1}
        assert plan.params[0].default == {"tags": ["a"]}
        assert plan.update == {"canaries": 1}


class TestDeploymentName:
    def test_prefix(self):
        assert deployment_name_for("1234") == "deployment1234"


class TestParseRawParameters:
    def test_none_and_empty(self):
        assert parse_raw_parameters(None) == {}
        assert parse_raw_parameters(b"") == {}
        assert parse_raw_parameters("null") == {}

    def test_json_object(self):
        assert parse_raw_parameters(b'{"size": 3}') == {"size": 3}
        assert parse_raw_parameters({"size": 3}) == {"size": 3}

    def test_non_object_rejected(self):
        with pytest.raises(InvalidParameters):
            parse_raw_parameters("[1, 2]")

    def test_malformed_rejected(self):
        with pytest.raises(InvalidParameters):
            parse_raw_parameters("{size")

    def test_invalid_utf8_rejected(self):
        with pytest.raises(InvalidParameters):
            parse_raw_parameters(b'{"a": "\xff"}')
