"""Tests for controlplane/ - credentials and the read-only client."""

import sys
import threading
import time
from pathlib import Path
from unittest.mock import MagicMock, patch

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import pytest
from azure.core.exceptions import (
    ClientAuthenticationError,
    HttpResponseError,
    ResourceNotFoundError as AzureResourceNotFoundError,
    ServiceResponseError,
)
from common import CancelToken
from controlplane import ControlPlaneClient, create_client, get_credential
from errors import ControlPlaneError, OperationCancelled, ResourceNotFoundError


def _record(data):
    record = MagicMock()
    record.serialize.return_value = data
    return record


@pytest.fixture
def sdk():
    return MagicMock()


@pytest.fixture
def client(scope, sdk):
    return ControlPlaneClient(scope, sdk)


class TestControlPlaneClient:
    """Test SDK calls and error mapping."""

    def test_environment_container_scoped_to_workspace(self, client, sdk):
        """Should pass the scope's resource group and workspace to the SDK."""
        sdk.environment_containers.get.return_value = _record({'name': 'env'})
        assert client.get_environment_container('env') == {'name': 'env'}
        sdk.environment_containers.get.assert_called_once_with(
            resource_group_name='rg-1', workspace_name='ws', name='env',
        )
        sdk.environment_containers.get.return_value.serialize.assert_called_once_with(keep_readonly=True)

    def test_workspace(self, client, sdk):
        sdk.workspaces.get.return_value = _record({'name': 'ws', 'id': '/ws'})
        assert client.get_workspace()['id'] == '/ws'
        sdk.workspaces.get.assert_called_once_with(resource_group_name='rg-1', workspace_name='ws')

    def test_versions(self, client, sdk):
        sdk.environment_versions.get.return_value = _record({'name': '3'})
        sdk.model_versions.get.return_value = _record({'name': '5'})
        client.get_environment_version('env-dev', '3')
        client.get_model_version('model-dev', '5')
        sdk.environment_versions.get.assert_called_once_with(
            resource_group_name='rg-1', workspace_name='ws', name='env-dev', version='3',
        )
        sdk.model_versions.get.assert_called_once_with(
            resource_group_name='rg-1', workspace_name='ws', name='model-dev', version='5',
        )

    def test_deployment(self, client, sdk):
        sdk.online_deployments.get.return_value = _record({'name': 'deploy-1'})
        client.get_online_deployment('chat-dev', 'deploy-1')
        sdk.online_deployments.get.assert_called_once_with(
            resource_group_name='rg-1', workspace_name='ws',
            endpoint_name='chat-dev', deployment_name='deploy-1',
        )

    def test_not_found(self, client, sdk):
        sdk.online_endpoints.get.side_effect = AzureResourceNotFoundError('gone')
        with pytest.raises(ResourceNotFoundError) as exc:
            client.get_online_endpoint('chat-dev')
        assert exc.value.kind == 'endpoint'
        assert exc.value.name == 'chat-dev'
        assert exc.value.code == 'E302'

    def test_other_http_error(self, client, sdk):
        error = HttpResponseError(message='slow down')
        error.status_code = 429
        sdk.model_containers.get.side_effect = error
        with pytest.raises(ControlPlaneError) as exc:
            client.get_model_container('m')
        assert not isinstance(exc.value, ResourceNotFoundError)
        assert exc.value.status == 429
        assert 'slow down' in exc.value.message

    def test_auth_failure(self, client, sdk):
        sdk.workspaces.get.side_effect = ClientAuthenticationError(message='no login')
        with pytest.raises(ControlPlaneError, match='Authentication failed'):
            client.get_workspace()

    def test_broken_response_is_control_plane_error(self, client, sdk):
        """A connection dropped mid-body should stay inside the error taxonomy."""
        sdk.workspaces.get.side_effect = ServiceResponseError('connection reset')
        with pytest.raises(ControlPlaneError, match='Request failed') as exc:
            client.get_workspace()
        assert exc.value.kind == 'workspace'

    def test_cancelled_before_request(self, client, sdk):
        cancel = CancelToken()
        cancel.cancel()
        with pytest.raises(OperationCancelled):
            client.get_workspace(cancel=cancel)
        sdk.workspaces.get.assert_not_called()

    def test_result_with_cancel_token(self, client, sdk):
        sdk.workspaces.get.return_value = _record({'name': 'ws'})
        assert client.get_workspace(cancel=CancelToken(timeout=5)) == {'name': 'ws'}

    def test_error_with_cancel_token(self, client, sdk):
        """Errors raised on the worker thread should be mapped the same way."""
        sdk.online_endpoints.get.side_effect = AzureResourceNotFoundError('gone')
        with pytest.raises(ResourceNotFoundError):
            client.get_online_endpoint('chat-dev', cancel=CancelToken())


class TestInFlightCancellation:
    """A slow read should be abandoned as soon as the token fires."""

    @pytest.fixture
    def slow_sdk(self, sdk):
        release = threading.Event()

        def slow_get(**kwargs):
            release.wait(3)
            return _record({'name': 'ws'})

        sdk.workspaces.get.side_effect = slow_get
        yield sdk
        release.set()

    def test_cancel_aborts_slow_read(self, scope, slow_sdk):
        client = ControlPlaneClient(scope, slow_sdk)
        cancel = CancelToken()
        timer = threading.Timer(0.2, cancel.cancel)
        timer.start()
        start = time.monotonic()
        try:
            with pytest.raises(OperationCancelled, match='cancelled'):
                client.get_workspace(cancel=cancel)
        finally:
            timer.cancel()
        assert time.monotonic() - start < 1.5

    def test_deadline_aborts_slow_read(self, scope, slow_sdk):
        client = ControlPlaneClient(scope, slow_sdk)
        start = time.monotonic()
        with pytest.raises(OperationCancelled, match='deadline'):
            client.get_workspace(cancel=CancelToken(timeout=0.3))
        assert time.monotonic() - start < 1.5


class TestCredentials:
    """Test credential selection and client construction."""

    def test_service_principal_when_all_set(self):
        env = {'AZURE_TENANT_ID': 't', 'AZURE_CLIENT_ID': 'c', 'AZURE_CLIENT_SECRET': 's'}
        with patch.dict('os.environ', env), \
             patch('controlplane.credentials.ClientSecretCredential') as mock_sp, \
             patch('controlplane.credentials.DefaultAzureCredential') as mock_default:
            get_credential()
        mock_sp.assert_called_once_with(tenant_id='t', client_id='c', client_secret='s')
        mock_default.assert_not_called()

    def test_default_credential_otherwise(self, monkeypatch):
        monkeypatch.delenv('AZURE_CLIENT_SECRET', raising=False)
        with patch('controlplane.credentials.ClientSecretCredential') as mock_sp, \
             patch('controlplane.credentials.DefaultAzureCredential') as mock_default:
            get_credential({'tenant_id': 't', 'client_id': 'c'})
        mock_sp.assert_not_called()
        mock_default.assert_called_once()

    def test_create_client(self, scope):
        """Should build the SDK client for the scope's subscription."""
        credential = MagicMock()
        with patch('controlplane.client.MachineLearningServicesMgmtClient') as mock_sdk:
            client = create_client(scope, credential)
        mock_sdk.assert_called_once_with(credential, 'sub-1')
        assert isinstance(client, ControlPlaneClient)
        assert client.scope is scope
        assert client.sdk is mock_sdk.return_value
