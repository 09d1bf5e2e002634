"""Provisioning step abstraction.

Every resource kind runs the same sequence:

    resolve -> decide -> invoke -> confirm -> publish

- resolve: expand name templates and check the definition file exists
  (fails before any tool or control-plane call)
- decide: consult the control plane or a probe; returns whether the tool
  must run (and may compute versions or verbs for the tool arguments)
- invoke: run the external tool synchronously
- confirm: re-read the canonical record; the tool's exit status alone is
  never taken as success
- publish: write resolved identifiers into the environment store

Subclasses supply the per-kind policy.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from common import CancelToken, CommandResult
from config import ComponentConfig, Scope
from errors import DefinitionNotFoundError, ProvisionError
from resolver.template import apply_overrides, expand
from toolbridge import ML_TOOL

logger = logging.getLogger(__name__)


@dataclass
class StepContext:
    """Collaborators and inputs shared by the steps of one call."""
    scope: Scope
    service_path: Path
    client: object
    tools: object
    store: object
    cancel: Optional[CancelToken] = None
    clock: Callable[[], float] = field(default=time.time)

    def lookup(self, key: str) -> Optional[str]:
        return self.store.get(key)


class ProvisioningStep:
    """One idempotent provisioning operation for a resource kind."""

    kind: str = ''
    tool: str = ML_TOOL
    tool_type: str = ''

    def __init__(self, ctx: StepContext, config: ComponentConfig):
        self.ctx = ctx
        self.config = config
        self.name: str = ''
        self.definition: Optional[Path] = None

    # -- sequence ---------------------------------------------------------

    def execute(self) -> dict:
        """Run the step and return the resulting resource record.

        Raises:
            ProvisionError: Annotated with this step's kind and resolved
                name when the raiser did not know them
        """
        try:
            self.resolve()
            if self.decide():
                args = self.tool_args()
                logger.info(f"[{self.kind}] Running {self.tool} for '{self.name}'...")
                result = self.invoke(args)
            else:
                result = None
            resource = self.confirm(result)
            self.publish(resource)
        except ProvisionError as e:
            e.kind = e.kind or self.kind
            e.name = e.name or self.name or None
            raise
        logger.info(f"[{self.kind}] '{self.name}' provisioned")
        return resource

    def resolve(self) -> None:
        self.name = self.expand(self.config.name)
        self.definition = self.check_definition(self.config.path)

    def decide(self) -> bool:
        return True

    def tool_args(self) -> list[str]:
        raise NotImplementedError

    def invoke(self, args: list[str]) -> CommandResult:
        return self.ctx.tools.run(self.tool, args, cancel=self.ctx.cancel)

    def confirm(self, result: Optional[CommandResult]) -> dict:
        raise NotImplementedError

    def published(self, resource: dict) -> dict:
        """Keys and values to write to the environment store."""
        return {}

    def publish(self, resource: dict) -> None:
        for key, value in self.published(resource).items():
            self.ctx.store.set(key, value)
            logger.debug(f"[{self.kind}] Published {key}={value}")

    # -- helpers ----------------------------------------------------------

    def expand(self, template: str) -> str:
        return expand(template, self.ctx.lookup)

    def check_definition(self, relative: str) -> Path:
        path = self.ctx.service_path / relative
        if not path.exists():
            raise DefinitionNotFoundError(path, kind=self.kind)
        return path

    def scoped_args(self) -> list[str]:
        """Type, scope and definition flags for the ml tool."""
        scope = self.ctx.scope
        return [
            '-t', self.tool_type,
            '-s', scope.subscription_id,
            '-g', scope.resource_group,
            '-w', scope.workspace_name,
            '-f', str(self.definition),
        ]

    def with_overrides(self, args: list[str], overrides: Optional[dict] = None) -> list[str]:
        if overrides is None:
            overrides = self.config.overrides
        return apply_overrides(args, overrides, self.ctx.lookup)
