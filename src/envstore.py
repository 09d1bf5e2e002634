"""Key/value environment stores.

Provisioning publishes resolved identifiers (environment, model, endpoint,
deployment and flow names) into a store so later pipeline steps can use
them without resolving the templates again. Template lookups read from the
same store, falling back to the process environment.
"""

import logging
import os
import re
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

_LINE = re.compile(r'^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*?)\s*$')
_ESCAPE = re.compile(r'\\(.)')
_UNESCAPES = {'n': '\n', 'r': '\r'}


@runtime_checkable
class EnvStore(Protocol):
    """Protocol for environment stores."""

    def get(self, key: str) -> Optional[str]:
        """Return the value for key, or None when unset."""

    def set(self, key: str, value: str) -> None:
        """Set key to value."""


class MemoryEnvStore:
    """Dict-backed store, optionally falling back to the process environment."""

    def __init__(self, values: Optional[dict] = None, use_os_environ: bool = False):
        self.values = dict(values or {})
        self.use_os_environ = use_os_environ

    def get(self, key: str) -> Optional[str]:
        if key in self.values:
            return self.values[key]
        if self.use_os_environ:
            return os.environ.get(key)
        return None

    def set(self, key: str, value: str) -> None:
        self.values[key] = value


def _unquote(raw: str) -> str:
    if len(raw) >= 2 and raw[0] == raw[-1] == '"':
        return _ESCAPE.sub(lambda m: _UNESCAPES.get(m.group(1), m.group(1)), raw[1:-1])
    if len(raw) >= 2 and raw[0] == raw[-1] == "'":
        return raw[1:-1]
    return raw


def _quote(value: str) -> str:
    escaped = (
        value.replace('\\', '\\\\')
        .replace('"', '\\"')
        .replace('\n', '\\n')
        .replace('\r', '\\r')
    )
    return f'"{escaped}"'


class DotenvStore:
    """Store persisted as a dotenv file (KEY="value" per line).

    Every set() rewrites the file atomically (write to .tmp, rename).
    Unset keys fall back to the process environment when use_os_environ
    is True.
    """

    def __init__(self, path: Path, use_os_environ: bool = True):
        self.path = Path(path)
        self.use_os_environ = use_os_environ
        self.values = self._load()

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        values = {}
        for line in self.path.read_text(encoding='utf-8').splitlines():
            if not line.strip() or line.lstrip().startswith('#'):
                continue
            match = _LINE.match(line)
            if match:
                values[match.group(1)] = _unquote(match.group(2))
            else:
                logger.warning(f"Ignoring malformed line in {self.path}: {line}")
        return values

    def reload(self) -> None:
        self.values = self._load()

    def get(self, key: str) -> Optional[str]:
        if key in self.values:
            return self.values[key]
        if self.use_os_environ:
            return os.environ.get(key)
        return None

    def set(self, key: str, value: str) -> None:
        self.values[key] = value
        self._save()
        logger.debug(f"Set {key}={value} in {self.path}")

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.path.with_name(self.path.name + '.tmp')
        lines = [f"{key}={_quote(value)}" for key, value in sorted(self.values.items())]
        try:
            tmp_file.write_text('\n'.join(lines) + '\n', encoding='utf-8')
            tmp_file.replace(self.path)
        except OSError:
            if tmp_file.exists():
                tmp_file.unlink()
            raise
