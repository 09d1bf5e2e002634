"""Error taxonomy for provisioning.

Every error carries a short code and a message, and where known the
resource kind and resolved name it concerns, so a failure can be
diagnosed without re-running.
"""

from typing import Optional


class ProvisionError(Exception):
    """Base exception for provisioning errors."""

    def __init__(
        self,
        code: str,
        message: str,
        kind: Optional[str] = None,
        name: Optional[str] = None,
    ):
        self.code = code
        self.message = message
        self.kind = kind
        self.name = name
        super().__init__(f"{code}: {message}")

    def describe(self) -> str:
        """Message prefixed with the resource kind and name, when known."""
        if self.kind and self.name:
            return f"{self.kind} '{self.name}': {self.message}"
        if self.kind:
            return f"{self.kind}: {self.message}"
        return self.message


class ConfigError(ProvisionError):
    """Project or driver configuration error."""

    def __init__(self, message: str):
        super().__init__("E100", message)


class DefinitionNotFoundError(ProvisionError):
    """Declarative definition file does not exist."""

    def __init__(self, path, kind: Optional[str] = None, name: Optional[str] = None):
        self.path = path
        super().__init__("E101", f"Definition file not found: {path}", kind, name)


class TemplateResolutionError(ProvisionError):
    """Template references a variable with no value."""

    def __init__(self, variable: str, template: str, key: Optional[str] = None):
        self.variable = variable
        self.template = template
        self.key = key
        if key:
            message = f"Unresolved variable '{variable}' in override '{key}': {template}"
        else:
            message = f"Unresolved variable '{variable}' in template: {template}"
        super().__init__("E102", message)


class ControlPlaneError(ProvisionError):
    """Control-plane read failed."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        not_found: bool = False,
        kind: Optional[str] = None,
        name: Optional[str] = None,
    ):
        self.status = status
        self.not_found = not_found
        super().__init__("E302" if not_found else "E301", message, kind, name)


class ResourceNotFoundError(ControlPlaneError):
    """Control plane reports the resource does not exist."""

    def __init__(self, message: str, kind: Optional[str] = None, name: Optional[str] = None):
        super().__init__(message, status=404, not_found=True, kind=kind, name=name)


class ToolInvocationError(ProvisionError):
    """External tool could not run or exited non-zero."""

    def __init__(
        self,
        tool: str,
        returncode: int,
        stdout: str = '',
        stderr: str = '',
        kind: Optional[str] = None,
        name: Optional[str] = None,
    ):
        self.tool = tool
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = (stderr or stdout).strip()
        message = f"{tool} exited with code {returncode}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__("E401", message, kind, name)


class ResultParseError(ProvisionError):
    """Tool output could not be parsed into the expected structure."""

    def __init__(self, message: str, output: str = '', kind: Optional[str] = None,
                 name: Optional[str] = None):
        self.output = output
        super().__init__("E402", message, kind, name)


class OperationCancelled(ProvisionError):
    """Caller cancelled the operation or its deadline passed."""

    def __init__(self, message: str = "operation cancelled"):
        super().__init__("E499", message)
