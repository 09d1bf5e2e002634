"""Run reporting."""

from reporting.report import PhaseOutcome, RunReport, collect_resources

__all__ = ['PhaseOutcome', 'RunReport', 'collect_resources']
