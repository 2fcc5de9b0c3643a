# portwarden/utils/shell.py
import subprocess
from typing import List, NamedTuple

from portwarden.utils.logger import Logger


class ToolResult(NamedTuple):
    returncode: int
    stdout: str
    stderr: str


class ToolInvocationError(Exception):
    """The external tool could not be started or did not finish in time."""

    def __init__(self, command: str, message: str):
        self.command = command
        self.message = message
        super().__init__(f"{command}: {message}")


def run_tool(args: List[str], timeout: float) -> ToolResult:
    """
    Runs an OS utility (ss, netstat, lsof, taskkill) and captures its output.
    Output is decoded leniently since these tools may emit locale-specific bytes.

    Raises:
        ToolInvocationError: binary missing, OS refused to start it, or timeout expired.
    """
    command = " ".join(args)
    Logger().debug(f"Running: {command}")
    try:
        proc = subprocess.run(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
        )
    except FileNotFoundError:
        raise ToolInvocationError(command, f"'{args[0]}' not found in PATH")
    except subprocess.TimeoutExpired:
        raise ToolInvocationError(command, f"timed out after {timeout:g}s")
    except OSError as e:
        raise ToolInvocationError(command, str(e))

    return ToolResult(
        proc.returncode,
        proc.stdout.decode("utf-8", errors="replace"),
        proc.stderr.decode("utf-8", errors="replace"),
    )
