"""Provisioning actions for ai.endpoint services.

Each action wraps one Provisioner operation and turns its outcome into an
ActionResult, so scenario phases report failures instead of raising.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from common import ActionResult, CancelToken
from config import Scope, ServiceConfig
from errors import ProvisionError
from provision import (
    DEPLOYMENT_NAME_KEY,
    ENDPOINT_NAME_KEY,
    ENVIRONMENT_NAME_KEY,
    FLOW_NAME_KEY,
    MODEL_NAME_KEY,
    Provisioner,
)

logger = logging.getLogger(__name__)


@dataclass
class ServiceTarget:
    """What a deploy scenario runs against."""
    service: ServiceConfig
    scope: Scope
    provisioner: Provisioner
    cancel: Optional[CancelToken] = None

    @property
    def name(self) -> str:
        return self.service.name


def _attempt(action_name: str, start: float, operation: Callable[[], ActionResult]) -> ActionResult:
    """Run operation, converting provisioning errors into a failed result."""
    try:
        return operation()
    except ProvisionError as e:
        logger.error(f"[{action_name}] {e.code} {e.describe()}")
        return ActionResult(
            success=False,
            message=f"{e.code}: {e.describe()}",
            duration=time.time() - start,
        )


@dataclass
class EnsureWorkspaceAction:
    """Verify the target workspace exists."""
    name: str

    def run(self, target: ServiceTarget, context: dict) -> ActionResult:
        start = time.time()

        def operation() -> ActionResult:
            workspace = target.provisioner.ensure_workspace(target.scope, cancel=target.cancel)
            return ActionResult(
                success=True,
                message=f"Workspace {workspace.get('name')} found",
                duration=time.time() - start,
                context_updates={'workspace_id': workspace.get('id', '')},
            )

        return _attempt(self.name, start, operation)


@dataclass
class CreateFlowAction:
    """Create or update the service's flow."""
    name: str

    def run(self, target: ServiceTarget, context: dict) -> ActionResult:
        start = time.time()

        def operation() -> ActionResult:
            target.provisioner.create_or_update_flow(
                target.scope, target.service.path, target.service.config.flow, cancel=target.cancel
            )
            flow_name = target.provisioner.store.get(FLOW_NAME_KEY)
            return ActionResult(
                success=True,
                message=f"Flow {flow_name} ready",
                duration=time.time() - start,
                context_updates={'flow_name': flow_name},
            )

        return _attempt(self.name, start, operation)


@dataclass
class CreateEnvironmentAction:
    """Create the next version of the service's environment."""
    name: str

    def run(self, target: ServiceTarget, context: dict) -> ActionResult:
        start = time.time()

        def operation() -> ActionResult:
            version = target.provisioner.create_environment_version(
                target.scope, target.service.path, target.service.config.environment,
                cancel=target.cancel,
            )
            env_name = target.provisioner.store.get(ENVIRONMENT_NAME_KEY)
            return ActionResult(
                success=True,
                message=f"Environment {env_name} version {version.get('name')} created",
                duration=time.time() - start,
                context_updates={
                    'environment_name': env_name,
                    'environment_version': version.get('name'),
                },
            )

        return _attempt(self.name, start, operation)


@dataclass
class CreateModelAction:
    """Create a version of the service's model."""
    name: str

    def run(self, target: ServiceTarget, context: dict) -> ActionResult:
        start = time.time()

        def operation() -> ActionResult:
            version = target.provisioner.create_model_version(
                target.scope, target.service.path, target.service.config.model,
                cancel=target.cancel,
            )
            model_name = target.provisioner.store.get(MODEL_NAME_KEY)
            return ActionResult(
                success=True,
                message=f"Model {model_name} version {version.get('name')} created",
                duration=time.time() - start,
                context_updates={
                    'model_name': model_name,
                    'model_version': version.get('name'),
                },
            )

        return _attempt(self.name, start, operation)


@dataclass
class EnsureEndpointAction:
    """Create the service's online endpoint if it does not exist."""
    name: str

    def run(self, target: ServiceTarget, context: dict) -> ActionResult:
        start = time.time()

        def operation() -> ActionResult:
            endpoint = target.provisioner.create_or_update_endpoint(
                target.scope, target.service.path, target.service.config.endpoint,
                cancel=target.cancel,
            )
            endpoint_name = target.provisioner.store.get(ENDPOINT_NAME_KEY)
            scoring_uri = (endpoint.get('properties') or {}).get('scoringUri', '')
            return ActionResult(
                success=True,
                message=f"Endpoint {endpoint_name} ready",
                duration=time.time() - start,
                context_updates={'endpoint_name': endpoint_name, 'scoring_uri': scoring_uri},
            )

        return _attempt(self.name, start, operation)


@dataclass
class DeployToEndpointAction:
    """Deploy the latest environment and model to the endpoint."""
    name: str
    endpoint_key: str = 'endpoint_name'  # context key holding the endpoint name

    def run(self, target: ServiceTarget, context: dict) -> ActionResult:
        start = time.time()

        endpoint_name = context.get(self.endpoint_key) or target.provisioner.store.get(ENDPOINT_NAME_KEY)
        if not endpoint_name:
            return ActionResult(
                success=False,
                message=f"No endpoint name in context key '{self.endpoint_key}'",
                duration=time.time() - start,
            )

        def operation() -> ActionResult:
            target.provisioner.deploy_to_endpoint(
                target.scope, target.service.path, endpoint_name,
                target.service.config.deployment_config, cancel=target.cancel,
            )
            deployment = target.provisioner.store.get(DEPLOYMENT_NAME_KEY)
            return ActionResult(
                success=True,
                message=f"Deployment {deployment} created on {endpoint_name}",
                duration=time.time() - start,
                context_updates={'deployment_name': deployment},
            )

        return _attempt(self.name, start, operation)
