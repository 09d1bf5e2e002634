"""Template expansion for resource names and overrides.

Supported syntax:
- ${NAME} and $NAME: value of NAME
- ${NAME:-default}: value of NAME, or default when unset or empty
- $$: a literal dollar sign

A variable is unresolved when the lookup returns None. Unresolved
variables are always an error; nothing is silently replaced with an
empty string.
"""

import re
from collections.abc import Mapping
from typing import Callable, Optional, Union

from errors import TemplateResolutionError

Lookup = Union[Callable[[str], Optional[str]], Mapping]

_VARIABLE = re.compile(
    r'\$(?:'
    r'(?P<escape>\$)'
    r'|\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?\}'
    r'|(?P<bare>[A-Za-z_][A-Za-z0-9_]*)'
    r')'
)


def _as_callable(lookup: Lookup) -> Callable[[str], Optional[str]]:
    if isinstance(lookup, Mapping):
        return lookup.get
    return lookup


def variables(template: str) -> list[str]:
    """List variable names referenced by a template, in order of appearance."""
    names = []
    for match in _VARIABLE.finditer(template):
        name = match.group('braced') or match.group('bare')
        if name and name not in names:
            names.append(name)
    return names


def expand(template: str, lookup: Lookup) -> str:
    """Expand a template using lookup.

    Args:
        template: Template string
        lookup: Function (or mapping) from variable name to value

    Returns:
        Expanded string

    Raises:
        TemplateResolutionError: If a referenced variable has no value
    """
    get = _as_callable(lookup)

    def substitute(match: re.Match) -> str:
        if match.group('escape'):
            return '$'
        name = match.group('braced') or match.group('bare')
        value = get(name)
        default = match.group('default')
        if default is not None and not value:
            return default
        if value is None:
            raise TemplateResolutionError(name, template)
        return str(value)

    return _VARIABLE.sub(substitute, template)


def apply_overrides(args: list[str], overrides: Mapping, lookup: Lookup) -> list[str]:
    """Append each override as a '--set key=value' pair.

    Overrides carry no ordering guarantee and the resulting pairs may come
    in any order. The input list is left untouched.

    Raises:
        TemplateResolutionError: For the first override that fails to
            expand, annotated with its key
    """
    result = list(args)
    for key, value in overrides.items():
        try:
            expanded = expand(str(value), lookup)
        except TemplateResolutionError as e:
            raise TemplateResolutionError(e.variable, e.template, key=key) from e
        result.extend(['--set', f'{key}={expanded}'])
    return result
