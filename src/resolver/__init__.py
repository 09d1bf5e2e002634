"""Resolver package for template and version resolution."""

from resolver.template import (
    apply_overrides,
    expand,
    variables,
)
from resolver.version import (
    FIRST_VERSION,
    VersionContainer,
    VersionResolver,
)

__all__ = [
    "apply_overrides",
    "expand",
    "variables",
    "FIRST_VERSION",
    "VersionContainer",
    "VersionResolver",
]
