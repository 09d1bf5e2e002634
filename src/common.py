"""Common utilities and types for provisioning automation."""

import logging
import subprocess
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from errors import OperationCancelled

logger = logging.getLogger(__name__)

# Interval for checking cancellation while a subprocess runs
POLL_INTERVAL = 0.2


@dataclass
class ActionResult:
    """Result returned by an action."""
    success: bool
    message: str = ''
    duration: float = 0.0
    context_updates: dict = field(default_factory=dict)
    continue_on_failure: bool = False


@dataclass
class CommandResult:
    """Captured output of an external command."""
    returncode: int
    stdout: str = ''
    stderr: str = ''

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CancelToken:
    """Caller-owned cancellation handle with an optional deadline.

    Passed through every tool and control-plane call. Cancelling the token
    (or passing the deadline) aborts the in-flight call with
    OperationCancelled.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self.deadline = time.monotonic() + timeout if timeout else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None when there is no deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self, operation: str = 'operation') -> None:
        """Raise OperationCancelled if the token is cancelled or expired."""
        if self._event.is_set():
            raise OperationCancelled(f"{operation} cancelled")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise OperationCancelled(f"{operation} exceeded its deadline")


def run_command(
    cmd: list[str],
    cwd: Optional[Path] = None,
    timeout: int = 600,
    env: Optional[dict] = None,
    cancel: Optional[CancelToken] = None,
) -> CommandResult:
    """Run a command and return its captured result.

    Launch failures and timeouts are reported as returncode -1 with the
    reason in stderr. Cancellation kills the process and raises
    OperationCancelled.
    """
    logger.debug(f"Running: {' '.join(cmd)}")
    if cancel:
        cancel.check(cmd[0])

    try:
        proc = subprocess.Popen(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding='utf-8',
            errors='replace',
            env=env,
        )
    except OSError as e:
        return CommandResult(-1, '', str(e))

    start = time.monotonic()
    while True:
        try:
            stdout, stderr = proc.communicate(timeout=POLL_INTERVAL)
            return CommandResult(proc.returncode, stdout, stderr)
        except subprocess.TimeoutExpired:
            pass

        if cancel and cancel.cancelled:
            proc.kill()
            proc.communicate()
            cancel.check(cmd[0])

        if time.monotonic() - start >= timeout:
            proc.kill()
            stdout, stderr = proc.communicate()
            return CommandResult(-1, stdout or '', f'Command timed out after {timeout}s')
