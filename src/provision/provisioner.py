"""Provisioner facade.

Owns the collaborators (credential factory, control-plane client factory,
tool bridge, environment store) and exposes one method per provisioning
operation. Credentials and the tool bridge are initialized lazily, once
per instance, under a lock.
"""

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from common import CancelToken
from config import ComponentConfig, EndpointDeploymentConfig, Scope
from controlplane.client import create_client
from controlplane.credentials import get_credential
from errors import ControlPlaneError
from provision.base import StepContext
from provision.endpoint import DeploymentStep, EndpointStep
from provision.flow import FlowStep
from provision.versioned import EnvironmentVersionStep, ModelVersionStep

logger = logging.getLogger(__name__)


class Provisioner:
    """Runs provisioning steps against a scope."""

    def __init__(
        self,
        store,
        tools,
        credential_factory: Callable = get_credential,
        client_factory: Callable = create_client,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize provisioner.

        Args:
            store: Environment store (get/set); also the template lookup
            tools: ToolBridge for the external tools
            credential_factory: Returns a credential; called once
            client_factory: (scope, credential) -> control-plane client
            clock: Time source for generated names
        """
        self.store = store
        self.tools = tools
        self.credential_factory = credential_factory
        self.client_factory = client_factory
        self.clock = clock
        self._credential = None
        self._initialized = False
        self._init_lock = threading.Lock()

    def _init(self) -> None:
        if self._initialized:
            return
        with self._init_lock:
            if self._initialized:
                return
            logger.debug("Initializing credentials and tool bridge")
            self._credential = self.credential_factory()
            self.tools.initialize()
            self._initialized = True

    def _context(
        self,
        scope: Scope,
        service_path: Optional[Path] = None,
        cancel: Optional[CancelToken] = None,
    ) -> StepContext:
        self._init()
        return StepContext(
            scope=scope,
            service_path=Path(service_path) if service_path else Path('.'),
            client=self.client_factory(scope, self._credential),
            tools=self.tools,
            store=self.store,
            cancel=cancel,
            clock=self.clock,
        )

    def ensure_workspace(self, scope: Scope, cancel: Optional[CancelToken] = None) -> dict:
        """Confirm the scope's workspace exists under that exact name."""
        ctx = self._context(scope, cancel=cancel)
        workspace = ctx.client.get_workspace(cancel=cancel)
        if workspace.get('name') != scope.workspace_name:
            raise ControlPlaneError(
                f"Workspace name mismatch: got '{workspace.get('name')}'",
                kind='workspace', name=scope.workspace_name,
            )
        return workspace

    def create_environment_version(
        self,
        scope: Scope,
        service_path: Path,
        config: ComponentConfig,
        cancel: Optional[CancelToken] = None,
    ) -> dict:
        ctx = self._context(scope, service_path, cancel)
        return EnvironmentVersionStep(ctx, config).execute()

    def create_model_version(
        self,
        scope: Scope,
        service_path: Path,
        config: ComponentConfig,
        cancel: Optional[CancelToken] = None,
    ) -> dict:
        ctx = self._context(scope, service_path, cancel)
        return ModelVersionStep(ctx, config).execute()

    def create_or_update_endpoint(
        self,
        scope: Scope,
        service_path: Path,
        config: ComponentConfig,
        cancel: Optional[CancelToken] = None,
    ) -> dict:
        ctx = self._context(scope, service_path, cancel)
        return EndpointStep(ctx, config).execute()

    def get_endpoint(self, scope: Scope, name: str, cancel: Optional[CancelToken] = None) -> dict:
        ctx = self._context(scope, cancel=cancel)
        return ctx.client.get_online_endpoint(name, cancel=cancel)

    def deploy_to_endpoint(
        self,
        scope: Scope,
        service_path: Path,
        endpoint_name: str,
        config: EndpointDeploymentConfig,
        cancel: Optional[CancelToken] = None,
    ) -> dict:
        ctx = self._context(scope, service_path, cancel)
        return DeploymentStep(ctx, endpoint_name, config).execute()

    def create_or_update_flow(
        self,
        scope: Scope,
        service_path: Path,
        config: ComponentConfig,
        cancel: Optional[CancelToken] = None,
    ) -> dict:
        ctx = self._context(scope, service_path, cancel)
        return FlowStep(ctx, config).execute()
