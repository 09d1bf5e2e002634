"""Deploy run reports.

A report records what each phase did and which resources it resolved:
names, versions and the endpoint's scoring URI. It is written next to
earlier runs as JSON and Markdown when the run ends.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

# Action context key -> (resource kind, attribute)
RESOURCE_FIELDS = {
    'workspace_id': ('workspace', 'id'),
    'flow_name': ('flow', 'name'),
    'environment_name': ('environment', 'name'),
    'environment_version': ('environment', 'version'),
    'model_name': ('model', 'name'),
    'model_version': ('model', 'version'),
    'endpoint_name': ('endpoint', 'name'),
    'scoring_uri': ('endpoint', 'scoring_uri'),
    'deployment_name': ('deployment', 'name'),
}


def collect_resources(updates: Optional[dict]) -> dict[str, dict]:
    """Group a phase's context updates by resource kind."""
    resources: dict[str, dict] = {}
    for key, value in (updates or {}).items():
        if key in RESOURCE_FIELDS and value:
            kind, attr = RESOURCE_FIELDS[key]
            resources.setdefault(kind, {})[attr] = value
    return resources


@dataclass
class PhaseOutcome:
    name: str
    status: str  # 'passed', 'failed', 'skipped'
    message: str = ''
    seconds: float = 0.0


@dataclass
class RunReport:
    """Outcome of one scenario run for one service."""
    service: str
    scenario: str
    report_dir: Path
    scope: str = ''
    outcomes: list[PhaseOutcome] = field(default_factory=list)
    resources: dict[str, dict] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    success: bool = False

    def start(self):
        self.started_at = datetime.now()
        self.report_dir.mkdir(parents=True, exist_ok=True)

    def record(
        self,
        phase: str,
        status: str,
        message: str = '',
        seconds: float = 0.0,
        updates: Optional[dict] = None,
    ):
        """Record a phase outcome and merge the resources it resolved."""
        self.outcomes.append(PhaseOutcome(phase, status, message, seconds))
        for kind, attrs in collect_resources(updates).items():
            self.resources.setdefault(kind, {}).update(attrs)

    @property
    def duration(self) -> float:
        if self.finished_at and self.started_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0

    @property
    def error(self) -> Optional[str]:
        """Message of the first failed phase."""
        return next((o.message for o in self.outcomes if o.status == 'failed' and o.message), None)

    def finish(self, success: bool):
        """Stamp the end of the run and write both report files."""
        self.finished_at = datetime.now()
        self.success = success
        data = self.to_dict()
        data['started_at'] = self.started_at.isoformat() if self.started_at else None
        data['finished_at'] = self.finished_at.isoformat()
        self._path('json').write_text(json.dumps(data, indent=2), encoding='utf-8')
        self._path('md').write_text(self._markdown(), encoding='utf-8')

    def to_dict(self) -> dict:
        result = {
            'scenario': self.scenario,
            'service': self.service,
            'scope': self.scope,
            'success': self.success,
            'duration_seconds': round(self.duration, 1),
            'resources': self.resources,
            'phases': [
                {'name': o.name, 'status': o.status, 'message': o.message,
                 'seconds': round(o.seconds, 1)}
                for o in self.outcomes
            ],
        }
        if not self.success and self.error:
            result['error'] = self.error
        return result

    def _markdown(self) -> str:
        lines = [
            f"# {self.service}: {self.scenario} {'passed' if self.success else 'failed'}",
            "",
            f"Scope `{self.scope or '-'}`, started "
            f"{self.started_at.strftime('%Y-%m-%d %H:%M:%S') if self.started_at else 'N/A'}, "
            f"took {self.duration:.1f}s.",
            "",
        ]
        if self.resources:
            lines += ["## Resources", "", "| Kind | Name | Version | Detail |", "|---|---|---|---|"]
            for kind, attrs in self.resources.items():
                detail = attrs.get('scoring_uri') or attrs.get('id') or ''
                lines.append(
                    f"| {kind} | {attrs.get('name', '')} | {attrs.get('version', '')} | {detail} |"
                )
            lines.append("")
        lines += ["## Phases", ""]
        for o in self.outcomes:
            suffix = f": {o.message}" if o.message else ''
            lines.append(f"- `{o.name}` {o.status} ({o.seconds:.1f}s){suffix}")
        if self.error:
            lines += ["", f"Error: {self.error}"]
        return '\n'.join(lines) + '\n'

    def _path(self, ext: str) -> Path:
        """Report path: timestamp, scenario, service and outcome."""
        timestamp = self.started_at.strftime('%Y%m%d-%H%M%S') if self.started_at else 'unknown'
        outcome = 'passed' if self.success else 'failed'
        return self.report_dir / f"{timestamp}.{self.scenario}.{self.service}.{outcome}.{ext}"
