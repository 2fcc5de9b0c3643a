"""
Connection Enumerator - Listening Socket Discovery

Queries the operating system's own connection table through its native
listing utility and parses the tabular text into Connection records.

Backends (one is selected per host at startup):
1. Linux: ss -tlnp / ss -ulnp
2. Windows: netstat -ano -p TCP|TCPv6|UDP|UDPv6
3. macOS / BSD: lsof -iTCP -sTCP:LISTEN / lsof -iUDP

Parsing is best-effort: a malformed row is skipped, never fatal. Only a
failure to run the tool at all surfaces as NetworkError.
"""

import platform
import re
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from portwarden.core.exceptions import NetworkError
from portwarden.core.schemas import Connection, Protocol
from portwarden.utils.logger import Logger
from portwarden.utils.shell import ToolInvocationError, run_tool

SS_PID_RE = re.compile(r"pid=(\d+)")


def parse_address(addr: str) -> Optional[Tuple[str, int]]:
    """Split 'ip:port', '[ipv6]:port', '*:port' or ':::port' into (ip, port).

    Returns:
        Tuple of address and port (1-65535), or None when no valid trailing port exists.
    """
    addr = addr.strip()
    if addr.startswith("["):
        end = addr.find("]")
        if end == -1:
            return None
        ip = addr[1:end]
        rest = addr[end + 1:]
        if not rest.startswith(":"):
            return None
        port_str = rest[1:]
    else:
        ip, sep, port_str = addr.rpartition(":")
        if not sep:
            return None

    if not ip or not port_str.isdigit():
        return None
    port = int(port_str)
    if not 1 <= port <= 65535:
        return None
    return ip, port


def parse_pid(token: str) -> Optional[int]:
    """PID 0 or garbage means the OS did not tell us the owner."""
    token = token.strip()
    if not token.isdigit():
        return None
    pid = int(token)
    return pid if pid > 0 else None


def extract_ss_pid(text: str) -> Optional[int]:
    # users:(("node",pid=12345,fd=21))
    match = SS_PID_RE.search(text)
    return parse_pid(match.group(1)) if match else None


def _connection(protocol: Protocol, local: str, state: str, pid: Optional[int],
                remote: Optional[str] = None) -> Optional[Connection]:
    parsed_local = parse_address(local)
    if parsed_local is None:
        return None
    local_addr, local_port = parsed_local

    remote_addr, remote_port = None, None
    if remote and protocol == Protocol.TCP:
        parsed_remote = parse_address(remote)
        if parsed_remote is not None:
            remote_addr, remote_port = parsed_remote

    return Connection(
        protocol=protocol,
        local_address=local_addr,
        local_port=local_port,
        remote_address=remote_addr,
        remote_port=remote_port,
        state=state,
        pid=pid,
    )


def parse_ss_output(output: str, protocol: Protocol) -> List[Connection]:
    lines = output.splitlines()
    if not lines:
        return []

    # A leading Netid column appears when ss lists more than one protocol
    offset = 1 if lines[0].split()[:1] == ["Netid"] else 0
    connections = []
    for line in lines[1:]:
        parts = line.split()
        if len(parts) < 5 + offset:
            continue
        state = parts[offset]
        local = parts[3 + offset]
        pid = extract_ss_pid(" ".join(parts[5 + offset:]))
        conn = _connection(
            protocol,
            local,
            state if protocol == Protocol.TCP else "*",
            pid,
        )
        if conn is None:
            Logger().debug(f"ss: skipping unparsable row: {line.strip()}")
            continue
        connections.append(conn)
    return connections


def parse_netstat_output(output: str, protocol: Protocol) -> List[Connection]:
    connections = []
    for line in output.splitlines():
        parts = line.split()
        # Header lines ('Active Connections', 'Proto Local Address ...') fall out here
        if len(parts) < 4 or parts[0].upper() != protocol.value:
            continue

        pid = parse_pid(parts[-1])
        if protocol == Protocol.TCP:
            if len(parts) < 5:
                continue
            state = parts[3]
            if state.upper() != "LISTENING":
                continue
            conn = _connection(protocol, parts[1], state, pid, remote=parts[2])
        else:
            conn = _connection(protocol, parts[1], "*", pid)

        if conn is None:
            Logger().debug(f"netstat: skipping unparsable row: {line.strip()}")
            continue
        connections.append(conn)
    return connections


def parse_lsof_output(output: str, protocol: Protocol) -> List[Connection]:
    connections = []
    for line in output.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 9:
            continue
        pid = parse_pid(parts[1])
        # NAME column: '*:3000', '[::1]:8080' or 'local->peer' for connected UDP
        name = parts[8]
        local, _, remote = name.partition("->")
        state = "LISTEN" if protocol == Protocol.TCP else "*"
        conn = _connection(protocol, local, state, pid, remote=remote or None)
        if conn is None:
            Logger().debug(f"lsof: skipping unparsable row: {line.strip()}")
            continue
        connections.append(conn)
    return connections


class ConnectionEnumerator(ABC):
    """Lists the live connection table. One subclass per operating system family."""

    tool = ""

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self.logger = Logger()

    @abstractmethod
    def queries(self) -> List[Tuple[Protocol, List[str]]]:
        """(protocol, argv) pairs; each protocol is queried separately."""

    @abstractmethod
    def parse(self, output: str, protocol: Protocol) -> List[Connection]:
        ...

    def enumerate(self) -> List[Connection]:
        connections: List[Connection] = []
        for protocol, args in self.queries():
            output = self._run(args)
            connections.extend(self.parse(output, protocol))
        self.logger.debug(f"{self.tool}: {len(connections)} sockets enumerated")
        return connections

    def _run(self, args: List[str]) -> str:
        try:
            result = run_tool(args, self.timeout)
        except ToolInvocationError as e:
            raise NetworkError(e.command, e.message) from e

        if result.returncode != 0 and not result.stdout.strip():
            if result.stderr.strip():
                raise NetworkError(" ".join(args), result.stderr.strip())
            # lsof exits 1 when nothing matches the filter
            return ""
        return result.stdout


class SsEnumerator(ConnectionEnumerator):
    tool = "ss"

    def queries(self) -> List[Tuple[Protocol, List[str]]]:
        return [
            (Protocol.TCP, ["ss", "-tlnp"]),
            (Protocol.UDP, ["ss", "-ulnp"]),
        ]

    def parse(self, output: str, protocol: Protocol) -> List[Connection]:
        return parse_ss_output(output, protocol)


class NetstatEnumerator(ConnectionEnumerator):
    tool = "netstat"

    def queries(self) -> List[Tuple[Protocol, List[str]]]:
        return [
            (Protocol.TCP, ["netstat", "-ano", "-p", "TCP"]),
            (Protocol.TCP, ["netstat", "-ano", "-p", "TCPv6"]),
            (Protocol.UDP, ["netstat", "-ano", "-p", "UDP"]),
            (Protocol.UDP, ["netstat", "-ano", "-p", "UDPv6"]),
        ]

    def parse(self, output: str, protocol: Protocol) -> List[Connection]:
        return parse_netstat_output(output, protocol)


class LsofEnumerator(ConnectionEnumerator):
    tool = "lsof"

    def queries(self) -> List[Tuple[Protocol, List[str]]]:
        return [
            (Protocol.TCP, ["lsof", "-iTCP", "-sTCP:LISTEN", "-n", "-P"]),
            (Protocol.UDP, ["lsof", "-iUDP", "-n", "-P"]),
        ]

    def parse(self, output: str, protocol: Protocol) -> List[Connection]:
        return parse_lsof_output(output, protocol)


def select_enumerator(system: Optional[str] = None, timeout: float = 10.0) -> ConnectionEnumerator:
    """Pick the backend for this host (or for 'system' when given, e.g. 'Linux')."""
    system = system or platform.system()
    if system == "Linux":
        return SsEnumerator(timeout)
    if system == "Windows":
        return NetstatEnumerator(timeout)
    return LsofEnumerator(timeout)
