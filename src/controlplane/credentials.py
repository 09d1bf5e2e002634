"""Credential acquisition for the control plane.

Uses a service principal when AZURE_TENANT_ID, AZURE_CLIENT_ID and
AZURE_CLIENT_SECRET are all set, otherwise DefaultAzureCredential
(CLI login, managed identity, environment, ...).
"""

import logging
import os
from typing import Any, Optional

from azure.identity import ClientSecretCredential, DefaultAzureCredential

logger = logging.getLogger(__name__)


def get_credential(settings: Optional[dict] = None) -> Any:
    """Build an Azure credential from settings or the process environment.

    Args:
        settings: Optional dict with tenant_id, client_id, client_secret
    """
    settings = settings or {}
    tenant_id = settings.get('tenant_id') or os.environ.get('AZURE_TENANT_ID')
    client_id = settings.get('client_id') or os.environ.get('AZURE_CLIENT_ID')
    client_secret = settings.get('client_secret') or os.environ.get('AZURE_CLIENT_SECRET')

    if tenant_id and client_id and client_secret:
        logger.debug(f"Using service principal credential for client {client_id}")
        return ClientSecretCredential(
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret,
        )
    logger.debug("Using DefaultAzureCredential")
    return DefaultAzureCredential()

