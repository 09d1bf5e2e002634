"""Version resolution for environment and model families.

Creation asks for the next version to create; deployment binding asks for
the latest existing version. Mixing the two either collides with an
in-flight version or binds a stale one.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from errors import ResourceNotFoundError

logger = logging.getLogger(__name__)

FIRST_VERSION = '1'


@dataclass(frozen=True)
class VersionContainer:
    """A resource family's version metadata as known to the control plane."""
    name: str
    next_version: Optional[str] = None
    latest_version: Optional[str] = None

    @classmethod
    def from_record(cls, record: dict) -> 'VersionContainer':
        """Build from a control-plane container record."""
        props = record.get('properties') or {}
        next_version = props.get('nextVersion')
        latest_version = props.get('latestVersion')
        return cls(
            name=record.get('name', ''),
            next_version=str(next_version) if next_version is not None else None,
            latest_version=str(latest_version) if latest_version is not None else None,
        )


class VersionResolver:
    """Resolves version numbers from container records.

    Args:
        client: Control-plane client
        kind: Resource family, 'environment' or 'model'
    """

    def __init__(self, client, kind: str):
        if kind not in ('environment', 'model'):
            raise ValueError(f"Unversioned resource kind: {kind}")
        self.client = client
        self.kind = kind

    def container(self, name: str, cancel=None) -> VersionContainer:
        """Read the container record. Raises ControlPlaneError on any failure."""
        if self.kind == 'environment':
            record = self.client.get_environment_container(name, cancel=cancel)
        else:
            record = self.client.get_model_container(name, cancel=cancel)
        return VersionContainer.from_record(record)

    def next_version(self, name: str, cancel=None) -> str:
        """Version number to use for the next create.

        A missing container means nothing was created yet, so the first
        version is '1'. Any other read failure propagates.
        """
        try:
            container = self.container(name, cancel=cancel)
        except ResourceNotFoundError:
            logger.debug(f"No {self.kind} container '{name}', starting at version {FIRST_VERSION}")
            return FIRST_VERSION
        return container.next_version or FIRST_VERSION

    def latest_version(self, name: str, cancel=None) -> str:
        """Latest existing version. The container must exist."""
        container = self.container(name, cancel=cancel)
        return container.latest_version or FIRST_VERSION
