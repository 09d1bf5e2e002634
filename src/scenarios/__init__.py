"""Scenario definitions and orchestration."""

import logging
import time
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

from actions import ServiceTarget
from common import ActionResult
from errors import OperationCancelled
from reporting import RunReport

logger = logging.getLogger(__name__)


@runtime_checkable
class Scenario(Protocol):
    """Protocol for scenario definitions.

    Class attributes:
        name: Scenario identifier (e.g., 'deploy-service')
        description: Human-readable description
    """
    name: str
    description: str

    def get_phases(self, target: ServiceTarget) -> list[tuple[str, Any, str]]:
        """Return list of (phase_name, action, description) tuples."""
        ...


def _scope_label(scope) -> str:
    return f"{scope.subscription_id}/{scope.resource_group}/{scope.workspace_name}"


class Orchestrator:
    """Runs a scenario's phases in order against one service.

    The run's only deadline is the target's cancel token: it is checked
    before each phase and passed down into every tool and control-plane
    call, so a timeout or Ctrl-C fails the current or next phase.
    """

    def __init__(
        self,
        scenario: Scenario,
        target: ServiceTarget,
        report_dir: Path,
        skip_phases: Optional[list[str]] = None,
        dry_run: bool = False
    ):
        self.scenario = scenario
        self.target = target
        self.skip_phases = skip_phases or []
        self.dry_run = dry_run
        self.report = RunReport(
            service=target.name,
            scenario=scenario.name,
            report_dir=report_dir,
            scope=_scope_label(target.scope),
        )
        self.context: dict[str, Any] = {}

    def preview(self) -> bool:
        """Print the phases a run would execute. Returns True."""
        phases = self.scenario.get_phases(self.target)
        print(f"DRY-RUN: {self.scenario.name} for service {self.target.name}")
        print(f"Workspace scope: {_scope_label(self.target.scope)}")
        for index, (phase_name, action, description) in enumerate(phases, 1):
            mark = 'skip' if phase_name in self.skip_phases else 'run'
            print(f"  {index}. [{mark:>4}] {phase_name:<18} {description} ({type(action).__name__})")
        remaining = self.target.cancel.remaining() if self.target.cancel else None
        if remaining is not None:
            print(f"Deadline: {remaining:.0f}s")
        print("Nothing was changed.")
        return True

    def _cancellation(self, phase_name: str) -> Optional[OperationCancelled]:
        if self.target.cancel is None:
            return None
        try:
            self.target.cancel.check(f"phase {phase_name}")
        except OperationCancelled as e:
            return e
        return None

    def _run_phase(self, phase_name: str, action) -> ActionResult:
        start = time.monotonic()
        try:
            return action.run(self.target, self.context)
        except Exception as e:
            logger.exception(f"Phase {phase_name} raised exception")
            return ActionResult(success=False, message=str(e), duration=time.monotonic() - start)

    def run(self) -> bool:
        """Run all phases. Returns True if none failed."""
        if self.dry_run:
            return self.preview()

        logger.info(
            f"Running '{self.scenario.name}' for service {self.target.name} "
            f"in {self.report.scope}"
        )
        self.report.start()
        success = True

        for phase_name, action, description in self.scenario.get_phases(self.target):
            if phase_name in self.skip_phases:
                logger.info(f"Skipping phase: {phase_name}")
                self.report.record(phase_name, 'skipped', description)
                continue

            cancelled = self._cancellation(phase_name)
            if cancelled:
                logger.error(f"{cancelled.code}: {cancelled.message}")
                self.report.record(phase_name, 'failed', f"{cancelled.code}: {cancelled.message}")
                success = False
                break

            logger.info(f"Running phase: {phase_name} - {description}")
            result = self._run_phase(phase_name, action)
            if result.success:
                logger.info(f"Phase {phase_name} passed")
                self.context.update(result.context_updates or {})
                self.report.record(
                    phase_name, 'passed', result.message, result.duration, result.context_updates
                )
                continue

            logger.error(f"Phase {phase_name} failed: {result.message}")
            self.report.record(phase_name, 'failed', result.message, result.duration)
            success = False
            if not result.continue_on_failure:
                break

        self.report.finish(success)
        logger.info(
            f"Scenario '{self.scenario.name}' {'passed' if success else 'failed'} "
            f"in {self.report.duration:.1f}s"
        )
        return success


# Registry of available scenarios
_scenarios: dict[str, type[Scenario]] = {}


def register_scenario(cls: type[Scenario]) -> type[Scenario]:
    """Decorator to register a scenario class."""
    _scenarios[cls.name] = cls
    return cls


def get_scenario(name: str) -> Scenario:
    """Get a scenario instance by name."""
    if name not in _scenarios:
        available = list(_scenarios.keys())
        raise ValueError(f"Unknown scenario: {name}. Available: {available}")
    return _scenarios[name]()


def list_scenarios() -> list[str]:
    """List available scenario names."""
    return sorted(_scenarios.keys())


# Import scenarios to trigger registration
from scenarios import deploy_service  # noqa: E402, F401
