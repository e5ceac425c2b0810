"""Service catalog published by the broker."""

from __future__ import annotations

from typing import List

from ..config import BrokerConfig
from .models import ServiceDefinition, ServicePlan


def build_catalog(config: BrokerConfig) -> List[ServiceDefinition]:
    service = ServiceDefinition(
        id=config.broker.broker_id,
        name=config.broker.service_name,
        description=config.broker.description,
        bindable=True,
        plan_updateable=False,
    )
    for plan_id, plan in config.plans.items():
        service.plans.append(
            ServicePlan(id=plan_id, name=plan.name, description=plan.description)
        )
    return [service]
