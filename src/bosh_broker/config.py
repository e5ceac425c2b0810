"""Configuration loading utilities for the BOSH service broker."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigurationError

# Load .env file if it exists
load_dotenv()

_DEFAULT_CONFIG_PATH = Path("config/default_config.json")


@dataclass(frozen=True)
class ParamSpec:
    """A parameter declared by a plan."""

    name: str
    default: Any = None
    random: bool = False     # generate a UUID when unset
    optional: bool = False

    @property
    def required(self) -> bool:
        return not self.optional

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ParamSpec":
        if not isinstance(payload, dict) or not payload.get("name"):
            raise ConfigurationError(f"Invalid parameter specification: {payload!r}")
        return cls(
            name=str(payload["name"]),
            default=payload.get("default"),
            random=bool(payload.get("random", False)),
            optional=bool(payload.get("optional", False)),
        )


@dataclass(frozen=True)
class PlanConfig:
    """A service plan: its parameters and the templates it deploys with."""

    id: str
    name: str
    description: str = ""
    params: Tuple[ParamSpec, ...] = ()
    manifest_template: str = ""   # path relative to templates_dir
    bind_template: str = ""
    unbind_template: str = ""     # optional
    stemcell: str = ""            # inline template rendering to a stemcell location
    release: str = ""             # inline template rendering to a release location
    update: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, plan_id: str, payload: Dict[str, Any]) -> "PlanConfig":
        if not isinstance(payload, dict):
            raise ConfigurationError(f"Plan {plan_id} must be a JSON object")
        params_payload = payload.get("params", []) or []
        if not isinstance(params_payload, list):
            raise ConfigurationError(f"Plan {plan_id}: params must be a list")
        update = payload.get("update", {}) or {}
        if not isinstance(update, dict):
            raise ConfigurationError(f"Plan {plan_id}: update must be a JSON object")
        return cls(
            id=plan_id,
            name=payload.get("name") or plan_id,
            description=payload.get("description", ""),
            params=tuple(ParamSpec.from_dict(p) for p in params_payload),
            manifest_template=payload.get("manifest_template", ""),
            bind_template=payload.get("bind_template", ""),
            unbind_template=payload.get("unbind_template", ""),
            stemcell=payload.get("stemcell", ""),
            release=payload.get("release", ""),
            update=dict(update),
        )


@dataclass
class DirectorConfig:
    """Connection settings for the BOSH director."""

    target: str = "https://192.168.50.6:25555"
    user: str = "admin"
    password: Optional[str] = None
    verify_ssl: bool = True
    timeout: int = 30                  # seconds per HTTP request
    task_poll_interval: float = 2.0    # seconds between task polls
    upload_timeout: int = 1800         # seconds to wait for an upload task


@dataclass
class BrokerSettings:
    """Catalog identity and local filesystem layout."""

    broker_id: str = "bosh-broker"
    service_name: str = "bosh"
    description: str = "Bosh Service Broker"
    deployments_dir: str = "deployments"
    templates_dir: str = "templates"
    script_timeout: int = 300          # seconds for bind/unbind scripts


@dataclass
class BrokerConfig:
    """Top-level configuration."""

    broker: BrokerSettings = field(default_factory=BrokerSettings)
    director: DirectorConfig = field(default_factory=DirectorConfig)
    plans: Dict[str, PlanConfig] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "BrokerConfig":
        broker_payload = _strip_comments(payload.get("broker", {}) or {})
        director_payload = _strip_comments(payload.get("director", {}) or {})
        plans_payload = _strip_comments(payload.get("plans", {}) or {})

        try:
            broker = BrokerSettings(**{**BrokerSettings().__dict__, **broker_payload})
            director = DirectorConfig(**{**DirectorConfig().__dict__, **director_payload})
        except TypeError as exc:
            raise ConfigurationError(f"Unknown configuration key: {exc}") from exc

        return cls(
            broker=broker,
            director=director,
            plans={
                plan_id: PlanConfig.from_dict(plan_id, plan_payload)
                for plan_id, plan_payload in plans_payload.items()
            },
        )


def _strip_comments(payload: Dict[str, Any]) -> Dict[str, Any]:
    # Keys starting with "_" are comments
    return {k: v for k, v in payload.items() if not k.startswith("_")}


def load_config(path: Optional[str] = None) -> BrokerConfig:
    """Load configuration from `path` or the default location.

    Environment variables (higher priority than config file):
    - BOSH_BROKER_DIRECTOR_TARGET: Director URL
    - BOSH_BROKER_DIRECTOR_USER: Director user
    - BOSH_BROKER_DIRECTOR_PASSWORD: Director password
    - BOSH_BROKER_BROKER_ID: Service id published in the catalog
    - BOSH_BROKER_DEPLOYMENTS_DIR: Where manifests and scripts are written
    """

    candidate_paths = []
    if path:
        candidate_paths.append(Path(path))
    candidate_paths.append(_DEFAULT_CONFIG_PATH)

    for candidate in candidate_paths:
        if candidate.is_file():
            try:
                with candidate.open("r", encoding="utf-8") as handle:
                    data = json.load(handle)
            except json.JSONDecodeError as exc:
                raise ConfigurationError(f"Malformed configuration file {candidate}: {exc}") from exc
            if not isinstance(data, dict):
                raise ConfigurationError(f"Configuration file {candidate} must hold a JSON object")
            config = BrokerConfig.from_dict(data)

            env_target = os.getenv("BOSH_BROKER_DIRECTOR_TARGET")
            if env_target:
                config.director.target = env_target

            env_user = os.getenv("BOSH_BROKER_DIRECTOR_USER")
            if env_user:
                config.director.user = env_user

            env_password = os.getenv("BOSH_BROKER_DIRECTOR_PASSWORD")
            if env_password:
                config.director.password = env_password

            env_broker_id = os.getenv("BOSH_BROKER_BROKER_ID")
            if env_broker_id:
                config.broker.broker_id = env_broker_id

            env_deployments = os.getenv("BOSH_BROKER_DEPLOYMENTS_DIR")
            if env_deployments:
                config.broker.deployments_dir = env_deployments

            return config

    raise FileNotFoundError(
        f"Could not find configuration file. Looked in: {', '.join(str(p) for p in candidate_paths)}"
    )
