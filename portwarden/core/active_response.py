# portwarden/core/active_response.py
"""
Termination Executor.
Sends one termination request to a PID using the platform's own mechanism.
No retries: the caller re-enumerates if it needs to know the process is gone.
"""
import os
import platform
import signal
import psutil
from abc import ABC, abstractmethod
from typing import Optional

from portwarden.core.exceptions import KillError, PermissionDenied, ProcessNotFound
from portwarden.utils.logger import Logger
from portwarden.utils.shell import ToolInvocationError, run_tool


class Terminator(ABC):
    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self.logger = Logger()

    @abstractmethod
    def terminate(self, pid: int, forceful: bool = False) -> None:
        """
        Raises:
            PermissionDenied: the OS refused (needs sudo / Administrator).
            ProcessNotFound: the PID no longer exists.
            KillError: any other failure.
        """

    def can_kill(self, pid: int) -> bool:
        return True


class UnixTerminator(Terminator):
    """SIGTERM for a graceful stop, SIGKILL when forceful."""

    def terminate(self, pid: int, forceful: bool = False) -> None:
        if pid <= 0:
            raise KillError(pid, "refusing to signal a process group or the kernel")
        sig = signal.SIGKILL if forceful else signal.SIGTERM
        try:
            psutil.Process(pid).send_signal(sig)
        except psutil.NoSuchProcess:
            self.logger.warning(f"Process {pid} no longer exists.")
            raise ProcessNotFound(pid)
        except psutil.AccessDenied:
            self.logger.error(f"Access denied terminating PID {pid}. Root privileges required.")
            raise PermissionDenied(pid, f"Cannot kill process {pid}. Try running with sudo.")
        except OSError as e:
            raise KillError(pid, str(e)) from e

        self.logger.success(f"Sent {sig.name} to PID {pid}.")

    def can_kill(self, pid: int) -> bool:
        """Signal 0 probes permission without delivering anything."""
        try:
            os.kill(pid, 0)
        except OSError:
            return False
        return True


class WindowsTerminator(Terminator):
    """
    taskkill /F for every request: there is no graceful signal an
    unprivileged tool can send, so 'forceful' does not change the call.
    """

    def terminate(self, pid: int, forceful: bool = False) -> None:
        try:
            result = run_tool(["taskkill", "/F", "/PID", str(pid)], self.timeout)
        except ToolInvocationError as e:
            raise KillError(pid, e.message) from e

        if result.returncode == 0:
            self.logger.success(f"taskkill terminated PID {pid}.")
            return

        output = f"{result.stderr}\n{result.stdout}".strip()
        lowered = output.lower()
        if "access is denied" in lowered or "access denied" in lowered:
            self.logger.error(f"Access denied terminating PID {pid}. Admin privileges required.")
            raise PermissionDenied(pid, f"Cannot kill process {pid}. Try running as Administrator.")
        if "not found" in lowered:
            raise ProcessNotFound(pid)
        raise KillError(pid, output or f"taskkill exited with {result.returncode}")


def select_terminator(system: Optional[str] = None, timeout: float = 10.0) -> Terminator:
    system = system or platform.system()
    if system == "Windows":
        return WindowsTerminator(timeout)
    return UnixTerminator(timeout)


def kill_process(pid: int, forceful: bool = False) -> None:
    """Terminate 'pid' with this host's terminator."""
    select_terminator().terminate(pid, forceful)


def is_elevated() -> bool:
    """True when running as root / Administrator."""
    if os.name == "nt":
        try:
            import ctypes
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0
