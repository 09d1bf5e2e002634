"""Project configuration management.

Configuration is loaded from a project YAML file:

    name: chat-app
    tools:                      # optional, tool name -> argv prefix
      ml: [python3, tools/ml_client.py]
      pf: [python3, tools/pf_client.py]
    services:
      chat:
        project: src/chat       # definition paths resolve relative to this
        host: ai.endpoint
        config:
          workspace: ${AZUREML_WORKSPACE_NAME}
          environment: {name: ..., path: ..., overrides: {...}}
          model: {...}
          flow: {...}
          endpoint: {...}
          deployment: {path: ..., overrides: {...}}

Resolution order for the project file:
1. --project CLI argument
2. $ML_DRIVER_PROJECT environment variable
3. ./project.yaml in the current directory

The environment store defaults to .ml-driver/.env next to the project file
($ML_DRIVER_ENV_FILE overrides it).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from errors import ConfigError
from resolver.template import expand

AI_ENDPOINT_HOST = 'ai.endpoint'
PROJECT_FILE = 'project.yaml'
ENV_DIR = '.ml-driver'


@dataclass(frozen=True)
class Scope:
    """Control-plane namespace all operations target."""
    subscription_id: str
    resource_group: str
    workspace_name: str


@dataclass(frozen=True)
class ComponentConfig:
    """One resource to provision.

    Attributes:
        name: Name template (e.g. "model-${ENV}")
        path: Definition file path, relative to the service directory
        overrides: Key -> value template, passed to the tool as --set pairs
    """
    name: str = ''
    path: str = ''
    overrides: dict = field(default_factory=dict)


@dataclass(frozen=True)
class EndpointDeploymentConfig:
    """Binding of an environment and a model version into a deployment."""
    environment: ComponentConfig
    model: ComponentConfig
    deployment: ComponentConfig


@dataclass
class AiEndpointConfig:
    """ai.endpoint service configuration."""
    workspace: str
    environment: Optional[ComponentConfig] = None
    model: Optional[ComponentConfig] = None
    flow: Optional[ComponentConfig] = None
    endpoint: Optional[ComponentConfig] = None
    deployment: Optional[ComponentConfig] = None

    @property
    def deployment_config(self) -> Optional[EndpointDeploymentConfig]:
        """Deployment bound to this service's environment and model."""
        if self.deployment is None:
            return None
        if self.environment is None or self.model is None:
            raise ConfigError("deployment requires both 'environment' and 'model' to be configured")
        return EndpointDeploymentConfig(
            environment=self.environment,
            model=self.model,
            deployment=self.deployment,
        )


@dataclass
class ServiceConfig:
    """A service in the project."""
    name: str
    project: Path
    host: str
    config: AiEndpointConfig

    @property
    def path(self) -> Path:
        return self.project


@dataclass
class ProjectConfig:
    """Parsed project file."""
    name: str
    path: Path
    services: dict = field(default_factory=dict)
    tools: dict = field(default_factory=dict)

    def get_service(self, name: str) -> ServiceConfig:
        if name not in self.services:
            available = ', '.join(sorted(self.services)) or 'none'
            raise ConfigError(f"Service '{name}' not found. Available: {available}")
        return self.services[name]


def _parse_yaml(path: Path) -> dict:
    """Parse a YAML file and return contents."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at top level of {path}")
    return data


def _override_value(value) -> str:
    """Render a YAML scalar as it would be written in the file."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def _parse_component(data, where: str, require_name: bool = True) -> Optional[ComponentConfig]:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ConfigError(f"{where}: expected a mapping")

    name = data.get('name', '')
    path = data.get('path', '')
    overrides = data.get('overrides') or {}

    if require_name and not name:
        raise ConfigError(f"{where}: 'name' is required")
    if not path:
        raise ConfigError(f"{where}: 'path' is required")
    if not isinstance(overrides, dict):
        raise ConfigError(f"{where}.overrides: expected a mapping")

    return ComponentConfig(
        name=str(name),
        path=str(path),
        overrides={str(k): _override_value(v) for k, v in overrides.items()},
    )


def _parse_service(name: str, data, project_dir: Path) -> ServiceConfig:
    where = f"services.{name}"
    if not isinstance(data, dict):
        raise ConfigError(f"{where}: expected a mapping")

    host = data.get('host', AI_ENDPOINT_HOST)
    if host != AI_ENDPOINT_HOST:
        raise ConfigError(f"{where}: unsupported host '{host}' (expected '{AI_ENDPOINT_HOST}')")

    cfg = data.get('config') or {}
    if not isinstance(cfg, dict):
        raise ConfigError(f"{where}.config: expected a mapping")
    if not cfg.get('workspace'):
        raise ConfigError(f"{where}.config: 'workspace' is required")

    ai_config = AiEndpointConfig(
        workspace=str(cfg['workspace']),
        environment=_parse_component(cfg.get('environment'), f"{where}.config.environment"),
        model=_parse_component(cfg.get('model'), f"{where}.config.model"),
        flow=_parse_component(cfg.get('flow'), f"{where}.config.flow"),
        endpoint=_parse_component(cfg.get('endpoint'), f"{where}.config.endpoint"),
        deployment=_parse_component(
            cfg.get('deployment'), f"{where}.config.deployment", require_name=False
        ),
    )
    if ai_config.deployment and not (ai_config.environment and ai_config.model):
        raise ConfigError(f"{where}.config.deployment requires 'environment' and 'model'")

    return ServiceConfig(
        name=name,
        project=project_dir / str(data.get('project', '.')),
        host=host,
        config=ai_config,
    )


def load_project(path: Path) -> ProjectConfig:
    """Load and validate a project file.

    Raises:
        ConfigError: If the file is missing or malformed
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Project file not found: {path}")

    data = _parse_yaml(path)
    project_dir = path.resolve().parent

    tools = data.get('tools') or {}
    if not isinstance(tools, dict):
        raise ConfigError("tools: expected a mapping of tool name to command")
    parsed_tools = {}
    for tool, argv in tools.items():
        if isinstance(argv, str):
            argv = argv.split()
        if not isinstance(argv, list) or not argv:
            raise ConfigError(f"tools.{tool}: expected a non-empty command list")
        parsed_tools[str(tool)] = [str(a) for a in argv]

    services = data.get('services') or {}
    if not isinstance(services, dict):
        raise ConfigError("services: expected a mapping")

    return ProjectConfig(
        name=str(data.get('name', project_dir.name)),
        path=project_dir,
        services={name: _parse_service(name, svc, project_dir) for name, svc in services.items()},
        tools=parsed_tools,
    )


def get_base_dir() -> Path:
    """Get the ml-driver directory."""
    return Path(__file__).parent.parent  # src/ -> ml-driver/


def discover_project_file(explicit: Optional[Path] = None) -> Path:
    """Find the project file (see module docstring for resolution order)."""
    if explicit:
        return Path(explicit)

    if env_path := os.environ.get('ML_DRIVER_PROJECT'):
        path = Path(env_path)
        if path.exists():
            return path
        raise ConfigError(f"ML_DRIVER_PROJECT={env_path} does not exist")

    local = Path.cwd() / PROJECT_FILE
    if local.exists():
        return local

    raise ConfigError(
        f"{PROJECT_FILE} not found. "
        "Pass --project or set ML_DRIVER_PROJECT."
    )


def default_env_file(project: ProjectConfig) -> Path:
    """Path of the dotenv environment store for a project."""
    if env_path := os.environ.get('ML_DRIVER_ENV_FILE'):
        return Path(env_path)
    return project.path / ENV_DIR / '.env'


def resolve_scope(service: ServiceConfig, lookup) -> Scope:
    """Build the Scope for a service.

    Subscription and resource group come from AZURE_SUBSCRIPTION_ID and
    AZURE_RESOURCE_GROUP; the workspace is the service's expanded template.
    """
    subscription_id = lookup('AZURE_SUBSCRIPTION_ID')
    resource_group = lookup('AZURE_RESOURCE_GROUP')
    if not subscription_id:
        raise ConfigError("AZURE_SUBSCRIPTION_ID is not set")
    if not resource_group:
        raise ConfigError("AZURE_RESOURCE_GROUP is not set")

    workspace = expand(service.config.workspace, lookup)
    if not workspace:
        raise ConfigError(f"Service '{service.name}': workspace resolved to an empty name")

    return Scope(
        subscription_id=subscription_id,
        resource_group=resource_group,
        workspace_name=workspace,
    )
