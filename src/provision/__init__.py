"""Provisioning steps and the Provisioner facade."""

from provision.base import ProvisioningStep, StepContext
from provision.endpoint import (
    DEPLOYMENT_NAME_KEY,
    ENDPOINT_NAME_KEY,
    DeploymentStep,
    EndpointStep,
    deployment_name,
)
from provision.flow import FLOW_NAME_KEY, FlowStep
from provision.provisioner import Provisioner
from provision.versioned import (
    ENVIRONMENT_NAME_KEY,
    MODEL_NAME_KEY,
    EnvironmentVersionStep,
    ModelVersionStep,
)

__all__ = [
    'ProvisioningStep',
    'StepContext',
    'DEPLOYMENT_NAME_KEY',
    'ENDPOINT_NAME_KEY',
    'DeploymentStep',
    'EndpointStep',
    'deployment_name',
    'FLOW_NAME_KEY',
    'FlowStep',
    'Provisioner',
    'ENVIRONMENT_NAME_KEY',
    'MODEL_NAME_KEY',
    'EnvironmentVersionStep',
    'ModelVersionStep',
]
