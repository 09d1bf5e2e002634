"""Shared pytest fixtures for ml-driver tests."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from common import CommandResult  # noqa: E402
from config import Scope  # noqa: E402
from envstore import MemoryEnvStore  # noqa: E402
from errors import ResourceNotFoundError, ToolInvocationError  # noqa: E402


class FakeControlPlane:
    """Dict-backed stand-in for ControlPlaneClient.

    Records are keyed by (kind, name) for containers and endpoints and by
    (kind, name, version) for versions; missing keys raise
    ResourceNotFoundError like a 404 would.
    """

    def __init__(self, workspace_name='ws'):
        self.workspace = {'name': workspace_name, 'id': f'/workspaces/{workspace_name}'}
        self.records = {}
        self.calls = []

    def _read(self, key):
        self.calls.append(key)
        if key not in self.records:
            raise ResourceNotFoundError(f"{key[0]} not found", kind=key[0], name=key[1])
        return self.records[key]

    def get_workspace(self, cancel=None):
        self.calls.append(('workspace',))
        return self.workspace

    def get_environment_container(self, name, cancel=None):
        return self._read(('environment', name))

    def get_environment_version(self, name, version, cancel=None):
        return self._read(('environment', name, version))

    def get_model_container(self, name, cancel=None):
        return self._read(('model', name))

    def get_model_version(self, name, version, cancel=None):
        return self._read(('model', name, version))

    def get_online_endpoint(self, name, cancel=None):
        return self._read(('endpoint', name))

    def get_online_deployment(self, endpoint_name, name, cancel=None):
        return self._read(('deployment', endpoint_name, name))


class FakeTools:
    """Stand-in for ToolBridge that records invocations.

    responses maps a tool name to a list of CommandResults consumed in
    order (default: success with empty output). on_run, when set, is
    called with (tool, args) before the result is returned, so tests can
    make the tool "create" records in a FakeControlPlane.
    """

    def __init__(self):
        self.calls = []
        self.responses = {}
        self.on_run = None
        self.initialize_count = 0

    def initialize(self):
        self.initialize_count += 1

    def run(self, tool, args, cancel=None, check=True):
        self.calls.append((tool, list(args)))
        if self.on_run:
            self.on_run(tool, list(args))
        queue = self.responses.get(tool) or []
        result = queue.pop(0) if queue else CommandResult(0, '', '')
        if result.returncode == -1 or (check and not result.ok):
            raise ToolInvocationError(tool, result.returncode, result.stdout, result.stderr)
        return result


def set_arg(args, key):
    """Value of the '--set key=...' pair in an argument vector, or None."""
    for i, arg in enumerate(args[:-1]):
        if arg == '--set' and args[i + 1].startswith(f'{key}='):
            return args[i + 1].split('=', 1)[1]
    return None


@pytest.fixture
def scope():
    return Scope(subscription_id='sub-1', resource_group='rg-1', workspace_name='ws')


@pytest.fixture
def control_plane():
    return FakeControlPlane()


@pytest.fixture
def fake_tools():
    return FakeTools()


@pytest.fixture
def store():
    return MemoryEnvStore({'ENV': 'dev'})


@pytest.fixture
def service_dir(tmp_path):
    """Service directory with one definition file per resource kind."""
    service = tmp_path / 'svc'
    (service / 'deploy').mkdir(parents=True)
    for name in ('environment.yaml', 'model.yaml', 'endpoint.yaml',
                 'deployment.yaml', 'flow.dag.yaml'):
        (service / 'deploy' / name).write_text('# definition\n')
    return service


@pytest.fixture
def project_file(tmp_path, service_dir):
    """Project file declaring one fully configured ai.endpoint service."""
    path = tmp_path / 'project.yaml'
    path.write_text("""
name: chat-app
tools:
  ml: [python3, tools/ml_client.py]
  pf: python3 tools/pf_client.py
services:
  chat:
    project: svc
    host: ai.endpoint
    config:
      workspace: ${AZUREML_WORKSPACE_NAME}
      flow:
        name: chat-flow
        path: deploy/flow.dag.yaml
      environment:
        name: env-${ENV}
        path: deploy/environment.yaml
        overrides:
          image: ${IMAGE:-python:3.11}
      model:
        name: model-${ENV}
        path: deploy/model.yaml
      endpoint:
        name: chat-${ENV}
        path: deploy/endpoint.yaml
      deployment:
        path: deploy/deployment.yaml
        overrides:
          instance_count: "1"
""")
    return path
