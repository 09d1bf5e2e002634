"""Online endpoint and deployment steps."""

import logging

from config import EndpointDeploymentConfig
from errors import ResourceNotFoundError
from provision.base import ProvisioningStep, StepContext
from resolver.version import FIRST_VERSION, VersionResolver

logger = logging.getLogger(__name__)

ENDPOINT_NAME_KEY = 'AZUREML_ENDPOINT_NAME'
DEPLOYMENT_NAME_KEY = 'AZUREML_DEPLOYMENT_NAME'

DEPLOYMENT_NAME_PREFIX = 'deploy'


def deployment_name(timestamp: float, prefix: str = DEPLOYMENT_NAME_PREFIX) -> str:
    """Deployment name from a timestamp, unique only to the second."""
    return f"{prefix}-{int(timestamp)}"


def version_ref(name: str, version: str) -> str:
    return f"azureml:{name}:{version}"


class EndpointStep(ProvisioningStep):
    """Create an endpoint once; an existing endpoint is never updated."""

    kind = 'endpoint'
    tool_type = 'online-endpoint'

    def decide(self) -> bool:
        try:
            self.ctx.client.get_online_endpoint(self.name, cancel=self.ctx.cancel)
        except ResourceNotFoundError:
            logger.info(f"[{self.kind}] '{self.name}' not found, creating")
            return True
        logger.info(f"[{self.kind}] '{self.name}' already exists, skipping create")
        return False

    def tool_args(self) -> list[str]:
        args = self.scoped_args() + ['--set', f'name={self.name}']
        return self.with_overrides(args)

    def confirm(self, result) -> dict:
        return self.ctx.client.get_online_endpoint(self.name, cancel=self.ctx.cancel)

    def published(self, resource: dict) -> dict:
        return {ENDPOINT_NAME_KEY: self.name}


class DeploymentStep(ProvisioningStep):
    """Deploy the latest environment and model versions to an endpoint.

    Always creates a fresh deployment with a timestamped name.
    """

    kind = 'deployment'
    tool_type = 'online-deployment'

    def __init__(self, ctx: StepContext, endpoint_name: str, config: EndpointDeploymentConfig):
        super().__init__(ctx, config.deployment)
        self.binding = config
        self.endpoint_name = endpoint_name
        self.environment_name = ''
        self.model_name = ''
        self.environment_ref = ''
        self.model_ref = ''

    def resolve(self) -> None:
        self.environment_name = self.expand(self.binding.environment.name)
        self.model_name = self.expand(self.binding.model.name)
        self.definition = self.check_definition(self.binding.deployment.path)

    def decide(self) -> bool:
        cancel = self.ctx.cancel
        environment = VersionResolver(self.ctx.client, 'environment').container(
            self.environment_name, cancel=cancel
        )
        model = VersionResolver(self.ctx.client, 'model').container(self.model_name, cancel=cancel)

        self.environment_ref = version_ref(
            environment.name or self.environment_name, environment.latest_version or FIRST_VERSION
        )
        self.model_ref = version_ref(model.name or self.model_name, model.latest_version or FIRST_VERSION)
        self.name = deployment_name(self.ctx.clock())
        logger.info(
            f"[{self.kind}] '{self.name}' binds {self.environment_ref} and {self.model_ref} "
            f"to endpoint '{self.endpoint_name}'"
        )
        return True

    def tool_args(self) -> list[str]:
        args = self.scoped_args() + [
            '--set', f'name={self.name}',
            '--set', f'environment={self.environment_ref}',
            '--set', f'model={self.model_ref}',
            '--set', f'endpoint_name={self.endpoint_name}',
        ]
        return self.with_overrides(args)

    def confirm(self, result) -> dict:
        return self.ctx.client.get_online_deployment(
            self.endpoint_name, self.name, cancel=self.ctx.cancel
        )

    def published(self, resource: dict) -> dict:
        return {
            ENDPOINT_NAME_KEY: self.endpoint_name,
            DEPLOYMENT_NAME_KEY: self.name,
        }
