"""ai.endpoint service scenarios.

deploy-service: workspace check, then flow, environment, model, endpoint
and deployment, each phase present only when the service configures it.

ensure-endpoint: workspace check and endpoint only, for preparing an
endpoint ahead of the first deployment.
"""

import logging

from actions import (
    CreateEnvironmentAction,
    CreateFlowAction,
    CreateModelAction,
    DeployToEndpointAction,
    EnsureEndpointAction,
    EnsureWorkspaceAction,
    ServiceTarget,
)
from scenarios import register_scenario

logger = logging.getLogger(__name__)


@register_scenario
class DeployService:
    """Provision everything an ai.endpoint service configures."""

    name = 'deploy-service'
    description = 'Provision flow, environment, model, endpoint and deployment'

    def get_phases(self, target: ServiceTarget) -> list[tuple]:
        cfg = target.service.config
        phases = [
            ('ensure_workspace', EnsureWorkspaceAction(name='ensure-workspace'),
             'Verify workspace exists'),
        ]
        if cfg.flow:
            phases.append(('flow', CreateFlowAction(name='flow'),
                           'Create or update flow'))
        if cfg.environment:
            phases.append(('environment', CreateEnvironmentAction(name='environment'),
                           'Create environment version'))
        if cfg.model:
            phases.append(('model', CreateModelAction(name='model'),
                           'Create model version'))
        if cfg.endpoint:
            phases.append(('endpoint', EnsureEndpointAction(name='endpoint'),
                           'Create online endpoint if missing'))
        if cfg.deployment:
            phases.append(('deployment', DeployToEndpointAction(name='deployment'),
                           'Deploy latest environment and model to endpoint'))
        return phases


@register_scenario
class EnsureEndpoint:
    """Create the service's endpoint without deploying to it."""

    name = 'ensure-endpoint'
    description = 'Verify workspace and create online endpoint if missing'

    def get_phases(self, target: ServiceTarget) -> list[tuple]:
        if not target.service.config.endpoint:
            logger.warning(f"Service '{target.name}' configures no endpoint")
            return [
                ('ensure_workspace', EnsureWorkspaceAction(name='ensure-workspace'),
                 'Verify workspace exists'),
            ]
        return [
            ('ensure_workspace', EnsureWorkspaceAction(name='ensure-workspace'),
             'Verify workspace exists'),
            ('endpoint', EnsureEndpointAction(name='endpoint'),
             'Create online endpoint if missing'),
        ]
