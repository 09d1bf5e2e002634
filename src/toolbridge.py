"""Bridge to the external provisioning tools.

The tools do the actual creation and mutation of resources. Each is a
named external program (argv prefix) invoked with a flag vector; stdout
and stderr are captured for diagnostics and, for flows, for the result.
"""

import logging
import os
import shutil
import threading
from pathlib import Path
from typing import Optional

from common import CancelToken, CommandResult, run_command
from errors import ConfigError, ToolInvocationError

logger = logging.getLogger(__name__)

ML_TOOL = 'ml'
FLOW_TOOL = 'pf'

DEFAULT_TOOLS = {
    ML_TOOL: ['python3', 'ml_client.py'],
    FLOW_TOOL: ['python3', 'pf_client.py'],
}

DEFAULT_TIMEOUT = 1800


class ToolBridge:
    """Runs named external tools and returns their captured output."""

    def __init__(
        self,
        tools: Optional[dict] = None,
        cwd: Optional[Path] = None,
        timeout: int = DEFAULT_TIMEOUT,
        env: Optional[dict] = None,
    ):
        """Initialize tool bridge.

        Args:
            tools: Tool name -> argv prefix (defaults to DEFAULT_TOOLS)
            cwd: Working directory for tool processes
            timeout: Per-invocation timeout in seconds
            env: Extra environment variables for tool processes
        """
        self.tools = {name: list(argv) for name, argv in (tools or DEFAULT_TOOLS).items()}
        self.cwd = Path(cwd) if cwd else None
        self.timeout = timeout
        self.env = env or {}
        self._initialized = False
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Verify every tool's executable can be found. Runs at most once."""
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            for name, argv in self.tools.items():
                if not argv:
                    raise ConfigError(f"Tool '{name}' has an empty command")
                if shutil.which(argv[0]) is None:
                    raise ConfigError(f"Tool '{name}' executable not found: {argv[0]}")
                logger.debug(f"Tool '{name}': {' '.join(argv)}")
            self._initialized = True

    def command(self, tool: str, args: list[str]) -> list[str]:
        if tool not in self.tools:
            raise ConfigError(f"Unknown tool: {tool}. Available: {sorted(self.tools)}")
        return self.tools[tool] + list(args)

    def run(
        self,
        tool: str,
        args: list[str],
        cancel: Optional[CancelToken] = None,
        check: bool = True,
    ) -> CommandResult:
        """Run a tool with args.

        Args:
            tool: Tool name (e.g. 'ml', 'pf')
            args: Flag vector
            cancel: Cancellation token
            check: Raise ToolInvocationError on a non-zero exit

        Raises:
            ToolInvocationError: On non-zero exit (when check) or when the
                tool cannot be launched or times out (always)
            OperationCancelled: If cancel fires while the tool runs
        """
        cmd = self.command(tool, args)
        env = {**os.environ, **self.env} if self.env else None
        result = run_command(cmd, cwd=self.cwd, timeout=self.timeout, env=env, cancel=cancel)
        if result.returncode == -1 or (check and not result.ok):
            raise ToolInvocationError(tool, result.returncode, result.stdout, result.stderr)
        return result
