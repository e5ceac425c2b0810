"""Service broker: turns instance operations into director deployments."""

from __future__ import annotations

import json
import logging
import shutil
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple, Union

from ..config import BrokerConfig, PlanConfig
from ..director import TASK_DONE, TASK_FAILED, TASK_PROCESSING, TASK_QUEUED
from ..errors import (
    CleanupError,
    ConfigurationError,
    ExecutionError,
    InvalidBindOutput,
    PlanNotFound,
    UnknownTaskStatus,
)
from ..execution import ScriptRunner
from ..params import ParameterResolver, ParameterSet, deployment_name_for, parse_raw_parameters
from ..paths import MANIFEST_MODE, SCRIPT_MODE, DeploymentPaths
from ..registry import InstanceRegistry, ServiceInstance
from ..rendering import PlanTemplates, load_all_templates
from .catalog import build_catalog
from .models import Binding, LastOperation, OperationResult, OperationState, ServiceDefinition

if TYPE_CHECKING:
    from ..director import DirectorClient

logger = logging.getLogger(__name__)

_OPERATION_STATES = {
    TASK_QUEUED: OperationState.IN_PROGRESS,
    TASK_PROCESSING: OperationState.IN_PROGRESS,
    TASK_DONE: OperationState.SUCCEEDED,
    TASK_FAILED: OperationState.FAILED,
}


def operation_state_for(status: str) -> OperationState:
    """Map a director task state onto the operation state reported to callers."""
    try:
        return _OPERATION_STATES[status]
    except (KeyError, TypeError):
        raise UnknownTaskStatus(status) from None


class ServiceBroker:
    """
    Provision, update, deprovision, bind and unbind service instances.

    Every instance operation holds the registry lock of its instance id, so
    operations on one instance never interleave.
    """

    def __init__(
        self,
        config: BrokerConfig,
        director: "DirectorClient",
        *,
        registry: Optional[InstanceRegistry] = None,
        runner: Optional[ScriptRunner] = None,
        paths: Optional[DeploymentPaths] = None,
        templates: Optional[Mapping[str, PlanTemplates]] = None,
    ) -> None:
        self.config = config
        self.director = director
        self.registry = registry if registry is not None else InstanceRegistry()
        self.runner = runner if runner is not None else ScriptRunner(timeout=config.broker.script_timeout)
        self.paths = paths if paths is not None else DeploymentPaths(config.broker.deployments_dir)

        if templates is None:
            templates = load_all_templates(config.plans, config.broker.templates_dir)
        missing = [plan_id for plan_id in config.plans if plan_id not in templates]
        if missing:
            raise ConfigurationError(f"No templates loaded for plans: {', '.join(missing)}")
        self.templates: Dict[str, PlanTemplates] = dict(templates)

        self.resolver = ParameterResolver(
            director.uuid,
            config.director.user,
            config.director.password,
        )
        logger.info(
            "Broker ready with %d plan(s), director %s",
            len(self.config.plans),
            self.resolver.director_uuid,
        )

    def catalog(self) -> List[ServiceDefinition]:
        return build_catalog(self.config)

    # ========== Deployments ==========

    def provision(
        self,
        instance_id: str,
        plan_id: str,
        parameters: Union[bytes, str, Mapping[str, Any], None] = None,
    ) -> OperationResult:
        plan = self._plan(plan_id)
        caller_params = parse_raw_parameters(parameters)
        with self.registry.locked(instance_id):
            logger.info("Provisioning instance %s (plan %s)", instance_id, plan_id)
            resolved, task_id = self._deploy(instance_id, caller_params, plan)
            instance = ServiceInstance(instance_id=instance_id, plan_id=plan_id, parameters=resolved)
            instance.record_task("provision", task_id)
            self.registry.put(instance)
        return OperationResult(instance_id=instance_id, operation="provision", task_id=task_id)

    def update(self, instance_id: str) -> OperationResult:
        """Redeploy with the parameters stored at provision time."""
        with self.registry.locked(instance_id):
            instance = self.registry.get(instance_id)
            plan = self._plan(instance.plan_id)
            logger.info("Updating instance %s (plan %s)", instance_id, instance.plan_id)
            resolved, task_id = self._deploy(instance_id, instance.parameters, plan)
            instance.parameters = resolved
            instance.record_task("update", task_id)
        return OperationResult(instance_id=instance_id, operation="update", task_id=task_id)

    def deprovision(self, instance_id: str) -> OperationResult:
        with self.registry.locked(instance_id):
            instance = self.registry.get(instance_id)
            self._remove_artifacts(instance_id)
            task_id = self.director.delete_deployment(deployment_name_for(instance_id))
            instance.record_task("deprovision", task_id)
            logger.info("Deprovisioning instance %s (task %s)", instance_id, task_id)
        return OperationResult(instance_id=instance_id, operation="deprovision", task_id=task_id)

    def last_operation(self, instance_id: str) -> LastOperation:
        with self.registry.locked(instance_id):
            instance = self.registry.get(instance_id)
            task_id = instance.last_task_id
            status = self.director.task_status(task_id)
            state = operation_state_for(status)
            return LastOperation(
                state=state,
                description=f"{instance.last_operation} task {task_id} is {status}",
                task_id=task_id,
            )

    def _deploy(
        self,
        instance_id: str,
        params: Optional[Mapping[str, Any]],
        plan: PlanConfig,
    ) -> Tuple[ParameterSet, str]:
        """Resolve, render, upload and deploy. Returns the parameters and task id.

        Steps run strictly in order and the first failure aborts the rest.
        Nothing already uploaded is rolled back.
        """
        templates = self.templates[plan.id]
        resolved = self.resolver.resolve(instance_id, params, plan)

        manifest_path = self.paths.manifest(instance_id)
        templates.manifest.render_to_file(resolved, manifest_path, MANIFEST_MODE)
        release = templates.release.render_text(resolved)
        stemcell = templates.stemcell.render_text(resolved)
        logger.debug("Rendered manifest %s", manifest_path)

        self.director.upload_stemcell(stemcell)
        self.director.upload_release(release)
        task_id = self.director.deploy(manifest_path)
        logger.info("Deployment %s started (task %s)", resolved["deployment_name"], task_id)
        return resolved, task_id

    def _remove_artifacts(self, instance_id: str) -> None:
        instance_dir = self.paths.instance_dir(instance_id)
        if not instance_dir.exists():
            logger.info("No local artifacts for instance %s", instance_id)
            return
        try:
            shutil.rmtree(instance_dir)
        except OSError as exc:
            raise CleanupError(f"Cannot remove {instance_dir}: {exc}") from exc

    # ========== Bindings ==========

    def bind(self, instance_id: str, binding_id: str) -> Binding:
        with self.registry.locked(instance_id):
            instance = self.registry.get(instance_id)
            templates = self.templates[instance.plan_id]
            script = self.paths.bind_script(instance_id, binding_id)
            templates.bind.render_to_file(instance.parameters, script, SCRIPT_MODE)

            result = self.runner.execute(script)
            if not result.ok:
                raise ExecutionError(str(script), result.exit_status, result.stderr)
            try:
                credentials = json.loads(result.stdout)
            except ValueError as exc:
                raise InvalidBindOutput(str(script), str(exc)) from exc
            if not isinstance(credentials, dict):
                raise InvalidBindOutput(
                    str(script), f"expected a JSON object, got {type(credentials).__name__}"
                )
            logger.info("Bound %s to instance %s", binding_id, instance_id)
            return Binding(binding_id=binding_id, credentials=credentials)

    def unbind(self, instance_id: str, binding_id: str) -> None:
        with self.registry.locked(instance_id):
            instance = self.registry.get(instance_id)
            templates = self.templates[instance.plan_id]
            if templates.unbind is None:
                logger.debug("Plan %s has no unbind script", instance.plan_id)
                return
            script = self.paths.unbind_script(instance_id, binding_id)
            templates.unbind.render_to_file(instance.parameters, script, SCRIPT_MODE)

            result = self.runner.execute(script)
            if not result.ok:
                raise ExecutionError(str(script), result.exit_status, result.stderr)
            logger.info("Unbound %s from instance %s", binding_id, instance_id)

    def _plan(self, plan_id: str) -> PlanConfig:
        try:
            return self.config.plans[plan_id]
        except KeyError:
            raise PlanNotFound(plan_id) from None
