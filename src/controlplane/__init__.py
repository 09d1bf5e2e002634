"""Control-plane access: credentials and read-only resource client."""

from controlplane.client import ControlPlaneClient, create_client
from controlplane.credentials import get_credential

__all__ = [
    "ControlPlaneClient",
    "create_client",
    "get_credential",
]
