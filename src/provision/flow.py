"""Flow step.

Flows are probed through the flow tool's own 'show' subcommand and the
result of create/update is read straight from the tool's stdout; there is
no control-plane confirmation for flows.
"""

import json
import logging

from errors import ResultParseError, ToolInvocationError
from provision.base import ProvisioningStep
from toolbridge import FLOW_TOOL

logger = logging.getLogger(__name__)

FLOW_NAME_KEY = 'AZUREML_FLOW_NAME'

# argparse exits with 2 on a usage error: the probe itself was malformed
USAGE_ERROR_EXIT = 2


class FlowStep(ProvisioningStep):
    """Create or update a flow."""

    kind = 'flow'
    tool = FLOW_TOOL

    verb: str = ''

    def resolve(self) -> None:
        super().resolve()
        self.name = f"{self.name}-{int(self.ctx.clock())}"

    def _scope_args(self) -> list[str]:
        scope = self.ctx.scope
        return [
            '-s', scope.subscription_id,
            '-w', scope.workspace_name,
            '-g', scope.resource_group,
        ]

    def exists(self) -> bool:
        """Probe for the flow with the tool's 'show' subcommand.

        A non-zero exit means absent. A tool that cannot be launched, times
        out or rejects its arguments gives no answer about existence and
        raises ToolInvocationError.
        """
        args = ['show'] + self._scope_args() + ['-n', self.name]
        try:
            result = self.ctx.tools.run(self.tool, args, cancel=self.ctx.cancel, check=False)
        except ToolInvocationError:
            logger.error(f"[{self.kind}] Probe for '{self.name}' could not run")
            raise
        if result.returncode == USAGE_ERROR_EXIT:
            raise ToolInvocationError(self.tool, result.returncode, result.stdout, result.stderr)
        return result.ok

    def decide(self) -> bool:
        self.verb = 'update' if self.exists() else 'create'
        logger.info(f"[{self.kind}] '{self.name}' will be {self.verb}d")
        return True

    def tool_args(self) -> list[str]:
        if self.verb == 'update':
            args = ['update', '-n', self.name]
        else:
            args = ['create', '-n', self.name, '-f', str(self.definition)]
        return self.with_overrides(args + self._scope_args())

    def confirm(self, result) -> dict:
        try:
            flow = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ResultParseError(
                f"Flow {self.verb} output is not valid JSON: {e}", output=result.stdout
            ) from e
        if not isinstance(flow, dict):
            raise ResultParseError(
                f"Flow {self.verb} output is not a JSON object", output=result.stdout
            )
        return flow

    def published(self, resource: dict) -> dict:
        return {FLOW_NAME_KEY: self.name}
