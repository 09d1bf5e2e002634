"""Environment and model version steps.

Both always create a new version; neither probes for existence.
"""

import logging

from provision.base import ProvisioningStep
from resolver.version import VersionResolver

logger = logging.getLogger(__name__)

ENVIRONMENT_NAME_KEY = 'AZUREML_ENVIRONMENT_NAME'
MODEL_NAME_KEY = 'AZUREML_MODEL_NAME'


class EnvironmentVersionStep(ProvisioningStep):
    """Create the next version of an environment."""

    kind = 'environment'
    tool_type = 'environment'

    version: str = ''

    def decide(self) -> bool:
        resolver = VersionResolver(self.ctx.client, self.kind)
        self.version = resolver.next_version(self.name, cancel=self.ctx.cancel)
        logger.info(f"[{self.kind}] '{self.name}' next version: {self.version}")
        return True

    def tool_args(self) -> list[str]:
        args = self.scoped_args() + [
            '--set', f'name={self.name}',
            '--set', f'version={self.version}',
        ]
        return self.with_overrides(args)

    def confirm(self, result) -> dict:
        return self.ctx.client.get_environment_version(
            self.name, self.version, cancel=self.ctx.cancel
        )

    def published(self, resource: dict) -> dict:
        return {ENVIRONMENT_NAME_KEY: self.name}


class ModelVersionStep(ProvisioningStep):
    """Create a model version; the tool assigns the version number."""

    kind = 'model'
    tool_type = 'model'

    version: str = ''

    def tool_args(self) -> list[str]:
        args = self.scoped_args() + ['--set', f'name={self.name}']
        return self.with_overrides(args)

    def confirm(self, result) -> dict:
        resolver = VersionResolver(self.ctx.client, self.kind)
        self.version = resolver.latest_version(self.name, cancel=self.ctx.cancel)
        logger.info(f"[{self.kind}] '{self.name}' latest version: {self.version}")
        return self.ctx.client.get_model_version(self.name, self.version, cancel=self.ctx.cancel)

    def published(self, resource: dict) -> dict:
        return {MODEL_NAME_KEY: self.name}
