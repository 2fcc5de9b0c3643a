"""
Portwarden Error Taxonomy
Every error raised by the engine carries the pid, port or command it concerns.
"""
from typing import Optional


class PortwardenError(Exception):
    """Base class for all engine errors."""


class InvalidPort(PortwardenError):
    def __init__(self, value: str):
        self.value = value
        super().__init__(f"invalid port: {value}")


class InvalidPortRange(PortwardenError):
    def __init__(self, value: str):
        self.value = value
        super().__init__(f"invalid port range: {value}")


class ConfigError(PortwardenError):
    """Configuration value could not be interpreted."""


class NetworkError(PortwardenError):
    """The connection-listing tool could not be invoked at all."""

    def __init__(self, command: str, message: str):
        self.command = command
        self.message = message
        super().__init__(f"failed to get network connections ({command}): {message}")


class KillError(PortwardenError):
    """Generic termination failure for a PID."""

    def __init__(self, pid: int, message: str):
        self.pid = pid
        self.message = message
        super().__init__(f"failed to kill process {pid}: {message}")


class PermissionDenied(KillError):
    """The OS privilege model blocked the termination."""

    def __init__(self, pid: int, hint: Optional[str] = None):
        self.hint = hint or "Try running with elevated privileges."
        super().__init__(pid, f"permission denied. {self.hint}")


class ProcessNotFound(KillError):
    """Target vanished between discovery and action."""

    def __init__(self, pid: int):
        super().__init__(pid, "process not found")

    def __str__(self) -> str:
        return f"process not found: PID {self.pid}"


class DockerError(PortwardenError):
    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Docker error: {message}")


class DockerNotAvailable(DockerError):
    def __init__(self, message: str = "Docker daemon socket not found"):
        super().__init__(message)

    def __str__(self) -> str:
        return f"Docker not available: {self.message}"
