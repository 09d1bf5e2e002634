"""Reusable provisioning actions."""

from actions.provision import (
    ServiceTarget,
    EnsureWorkspaceAction,
    CreateFlowAction,
    CreateEnvironmentAction,
    CreateModelAction,
    EnsureEndpointAction,
    DeployToEndpointAction,
)

__all__ = [
    'ServiceTarget',
    'EnsureWorkspaceAction',
    'CreateFlowAction',
    'CreateEnvironmentAction',
    'CreateModelAction',
    'EnsureEndpointAction',
    'DeployToEndpointAction',
]
