"""Errors raised by environment workflows."""


class MuError(Exception):
    """Base class for every workflow failure."""


class ConfigError(MuError):
    pass


class EnvironmentNotFound(MuError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unable to find environment named '{name}' in configuration")


class DeploymentFailed(MuError):
    """Stack reached a failure terminal status."""

    def __init__(self, stack_name: str, status: str, detail: str = ""):
        self.stack_name = stack_name
        self.status = status
        message = f"Stack '{stack_name}' ended in status {status}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ImageDiscoveryFailed(MuError):
    def __init__(self, pattern: str, reason: str = "no matching image"):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Unable to find image matching '{pattern}': {reason}")


class RequestRejected(MuError):
    """Upsert or delete request refused before the stack went in progress."""

    def __init__(self, stack_name: str, reason: str):
        self.stack_name = stack_name
        self.reason = reason
        super().__init__(f"Request for stack '{stack_name}' rejected: {reason}")


class StackWaitTimeout(MuError):
    def __init__(self, stack_name: str, last_status: str | None, timeout: float):
        self.stack_name = stack_name
        self.last_status = last_status
        self.timeout = timeout
        super().__init__(
            f"Timed out after {timeout:g}s waiting on stack '{stack_name}' "
            f"(last status: {last_status or 'unknown'})"
        )


class WorkflowCancelled(MuError):
    def __init__(self, stack_name: str):
        self.stack_name = stack_name
        super().__init__(f"Cancelled while waiting on stack '{stack_name}'")
