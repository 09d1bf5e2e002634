"""Read-only client for the Machine Learning Services management API.

Every read is scoped by subscription, resource group and workspace.
The provisioning core only reads through this client: before creation to
resolve versions and probe existence, after creation to confirm state.
"""

import logging
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeout
from typing import Any, Callable

from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    HttpResponseError,
    ResourceNotFoundError as AzureResourceNotFoundError,
)
from azure.mgmt.machinelearningservices import MachineLearningServicesMgmtClient

from common import POLL_INTERVAL
from errors import ControlPlaneError, ResourceNotFoundError

logger = logging.getLogger(__name__)


def _wait(operation: Callable[[], Any], cancel, label: str) -> Any:
    """Run operation on a daemon thread, returning early if cancel fires.

    The SDK call itself cannot be interrupted, so on cancellation its
    thread is abandoned and its eventual result discarded.
    """
    future: Future = Future()

    def work():
        future.set_running_or_notify_cancel()
        try:
            future.set_result(operation())
        except BaseException as e:
            future.set_exception(e)

    threading.Thread(target=work, name='controlplane-read', daemon=True).start()
    while True:
        try:
            return future.result(timeout=POLL_INTERVAL)
        except FutureTimeout:
            cancel.check(label)


class ControlPlaneClient:
    """Workspace-scoped resource reads over the management SDK."""

    def __init__(self, scope, sdk_client):
        """Initialize control-plane client.

        Args:
            scope: Scope (subscription, resource group, workspace)
            sdk_client: MachineLearningServicesMgmtClient for scope's subscription
        """
        self.scope = scope
        self.sdk = sdk_client

    def _workspace_args(self) -> dict:
        return {
            'resource_group_name': self.scope.resource_group,
            'workspace_name': self.scope.workspace_name,
        }

    def _get(self, operation: Callable[..., Any], kind: str, name: str, cancel=None, /, **kwargs) -> dict:
        """Call an SDK get operation and return the resource as a dict.

        Raises:
            ResourceNotFoundError: The resource does not exist
            ControlPlaneError: Any other SDK or transport failure
            OperationCancelled: cancel fired before or during the read
        """
        label = f"GET {kind} '{name}'"
        kwargs.update(self._workspace_args())
        logger.debug(f"{label} in {self.scope.resource_group}/{self.scope.workspace_name}")

        def call():
            return operation(**kwargs)

        try:
            if cancel:
                cancel.check(label)
                record = _wait(call, cancel, label)
            else:
                record = call()
        except AzureResourceNotFoundError as e:
            raise ResourceNotFoundError(f"{kind} not found", kind=kind, name=name) from e
        except ClientAuthenticationError as e:
            raise ControlPlaneError(
                f"Authentication failed: {e.message}", kind=kind, name=name
            ) from e
        except HttpResponseError as e:
            raise ControlPlaneError(
                f"HTTP {e.status_code}: {e.message}", status=e.status_code, kind=kind, name=name
            ) from e
        except AzureError as e:
            raise ControlPlaneError(f"Request failed: {e.message}", kind=kind, name=name) from e

        return record.serialize(keep_readonly=True)

    def get_workspace(self, cancel=None) -> dict:
        return self._get(self.sdk.workspaces.get, 'workspace', self.scope.workspace_name, cancel)

    def get_environment_container(self, name: str, cancel=None) -> dict:
        return self._get(self.sdk.environment_containers.get, 'environment', name, cancel, name=name)

    def get_environment_version(self, name: str, version: str, cancel=None) -> dict:
        return self._get(
            self.sdk.environment_versions.get, 'environment', name, cancel,
            name=name, version=version,
        )

    def get_model_container(self, name: str, cancel=None) -> dict:
        return self._get(self.sdk.model_containers.get, 'model', name, cancel, name=name)

    def get_model_version(self, name: str, version: str, cancel=None) -> dict:
        return self._get(
            self.sdk.model_versions.get, 'model', name, cancel, name=name, version=version,
        )

    def get_online_endpoint(self, name: str, cancel=None) -> dict:
        return self._get(self.sdk.online_endpoints.get, 'endpoint', name, cancel, endpoint_name=name)

    def get_online_deployment(self, endpoint_name: str, name: str, cancel=None) -> dict:
        return self._get(
            self.sdk.online_deployments.get, 'deployment', name, cancel,
            endpoint_name=endpoint_name, deployment_name=name,
        )


def create_client(scope, credential) -> ControlPlaneClient:
    """Default client factory: a ControlPlaneClient for scope using credential."""
    sdk_client = MachineLearningServicesMgmtClient(credential, scope.subscription_id)
    return ControlPlaneClient(scope, sdk_client)
