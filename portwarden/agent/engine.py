# portwarden/agent/engine.py
"""
Portwarden Engine - Port inspection and kill orchestration

Single entry point used by the CLI, the dashboard and the exporters.
Platform backends (enumerator, terminator) are chosen once, when the
engine is built; calling code never checks the OS itself.

Kill flow for one port:
1. Container check: a container publishing the port is stopped by name
2. Discover: NOT_FOUND when nothing owns the port
3. Classify: the service table decides how strong the confirmation must be
4. Confirm: delegated to the caller through a callback
5. Terminate: KILLED, or FAILED carrying the typed error
"""

from typing import Callable, List, Optional, Tuple

from portwarden.core.active_response import Terminator, is_elevated, select_terminator
from portwarden.core.config import Config
from portwarden.core.exceptions import DockerError, InvalidPort, InvalidPortRange, KillError
from portwarden.core.schemas import (
    ConfirmationLevel,
    ConfirmationRequest,
    ContainerInfo,
    KillOutcome,
    KillStatus,
    PortInfo,
    ProcessTreeNode,
    ServiceInfo,
)
from portwarden.modules import service_catalog
from portwarden.modules.connection_enumerator import ConnectionEnumerator, select_enumerator
from portwarden.modules.container_monitor import DockerMonitor
from portwarden.modules.port_monitor import PortMonitor
from portwarden.modules.process_monitor import build_process_tree, get_process_tree
from portwarden.utils.logger import Logger

# Receives the confirmation request, returns the user's raw answer
ConfirmCallback = Callable[[ConfirmationRequest], str]


def parse_port(text: str) -> int:
    text = text.strip()
    if not text.isdigit():
        raise InvalidPort(text)
    port = int(text)
    if not 1 <= port <= 65535:
        raise InvalidPort(text)
    return port


def parse_port_range(text: str) -> Tuple[int, int]:
    """'3000-3010' -> (3000, 3010). Start must not exceed end."""
    parts = text.split("-")
    if len(parts) != 2:
        raise InvalidPortRange(text)
    try:
        start, end = parse_port(parts[0]), parse_port(parts[1])
    except InvalidPort:
        raise InvalidPortRange(text)
    if start > end:
        raise InvalidPortRange(text)
    return start, end


class Engine:
    """Facade over enumeration, enrichment, classification, containers and termination."""

    def __init__(self, config: Optional[Config] = None,
                 enumerator: Optional[ConnectionEnumerator] = None,
                 terminator: Optional[Terminator] = None,
                 docker_monitor: Optional[DockerMonitor] = None):
        self.config = config or Config()
        self.logger = Logger()
        self.enumerator = enumerator or select_enumerator(timeout=self.config.tool_timeout)
        self.terminator = terminator or select_terminator(timeout=self.config.tool_timeout)
        self.docker = docker_monitor or DockerMonitor(
            socket_path=self.config.docker_socket,
            timeout=self.config.docker_timeout,
            stop_timeout=self.config.docker_stop_timeout,
        )
        self.ports = PortMonitor(self.enumerator, workers=self.config.enrich_workers)

    # --- Discovery ---
    def list_ports(self, protocol: Optional[str] = None) -> List[PortInfo]:
        return self.ports.list_ports(protocol)

    def port_info(self, port: int) -> Optional[PortInfo]:
        return self.ports.port_info(port)

    def ports_in_range(self, start: int, end: int) -> List[PortInfo]:
        if start > end:
            raise InvalidPortRange(f"{start}-{end}")
        return self.ports.ports_in_range(start, end)

    def resolve_port(self, text: str) -> int:
        """A port number or a configured alias such as 'react'."""
        alias = self.config.resolve_alias(text)
        if alias is not None:
            return alias
        return parse_port(text)

    # --- Processes ---
    def process_tree(self, pid: int) -> Tuple[List[Tuple[int, str]], List[Tuple[int, str]]]:
        return get_process_tree(pid)

    def build_process_tree(self, pid: int) -> Optional[ProcessTreeNode]:
        return build_process_tree(pid)

    def kill(self, pid: int, forceful: bool = False) -> None:
        self.terminator.terminate(pid, forceful)

    def can_kill(self, pid: int) -> bool:
        return self.terminator.can_kill(pid)

    def is_elevated(self) -> bool:
        return is_elevated()

    # --- Classification ---
    def classify(self, port: int) -> Optional[ServiceInfo]:
        return service_catalog.classify(port)

    def requires_confirmation(self, port: int) -> bool:
        return service_catalog.requires_confirmation(port)

    # --- Containers ---
    def docker_available(self) -> bool:
        return self.docker.available()

    def container_for_port(self, port: int) -> Optional[ContainerInfo]:
        return self.docker.find_for_port(port)

    def list_containers(self) -> List[ContainerInfo]:
        return self.docker.list_all()

    def stop_container(self, name: str) -> None:
        self.docker.stop(name)

    def is_critical_container(self, container: ContainerInfo) -> bool:
        return self.docker.is_critical(container)

    # --- Kill flow ---
    def confirmation_for(self, port: int, force: bool = False,
                         port_info: Optional[PortInfo] = None,
                         container: Optional[ContainerInfo] = None) -> ConfirmationRequest:
        """How much friction the caller must apply before the engine acts."""
        service = self.classify(port)
        if force or not self.config.confirm:
            level = ConfirmationLevel.NONE
        elif container is not None:
            # stopping a database container can lose more than one process
            level = ConfirmationLevel.EXACT_YES if self.is_critical_container(container) else ConfirmationLevel.YES_NO
        elif self.requires_confirmation(port):
            level = ConfirmationLevel.TYPED_YES
        else:
            level = ConfirmationLevel.YES_NO
        return ConfirmationRequest(port=port, level=level, port_info=port_info,
                                   container=container, service=service)

    def kill_port(self, port: int, confirm: Optional[ConfirmCallback] = None,
                  forceful: bool = False, force: bool = False,
                  dry_run: bool = False) -> KillOutcome:
        """
        Runs the full kill flow for one port.

        Args:
            port: Port whose owner should go away.
            confirm: Asked for an answer whenever confirmation is required.
                Without a callback, anything needing confirmation is cancelled.
            forceful: SIGKILL instead of SIGTERM (ignored on Windows).
            force: Skip confirmation entirely.
            dry_run: Report what would happen without acting.

        Returns:
            KillOutcome: never raises for kill/stop failures; they land in 'error'.
        """
        container = self.container_for_port(port) if self.docker_available() else None
        if container is not None:
            return self._stop_container_flow(port, container, confirm, force, dry_run)

        info = self.port_info(port)
        if info is None:
            self.logger.info(f"Port {port} is not in use.")
            return KillOutcome(port=port, status=KillStatus.NOT_FOUND)

        if dry_run:
            return KillOutcome(port=port, status=KillStatus.DRY_RUN, port_info=info)

        request = self.confirmation_for(port, force, port_info=info)
        if not self._approved(request, confirm):
            return KillOutcome(port=port, status=KillStatus.CANCELLED, port_info=info)

        try:
            self.kill(info.pid, forceful)
        except KillError as e:
            self.logger.error(f"Kill on port {port} failed: {e}")
            return KillOutcome(port=port, status=KillStatus.FAILED, port_info=info, error=e)

        self.logger.success(f"Killed process {info.pid} ({info.process_name}) on port {port}.")
        return KillOutcome(port=port, status=KillStatus.KILLED, port_info=info)

    def _stop_container_flow(self, port: int, container: ContainerInfo,
                             confirm: Optional[ConfirmCallback], force: bool,
                             dry_run: bool) -> KillOutcome:
        if dry_run:
            return KillOutcome(port=port, status=KillStatus.DRY_RUN, container=container)

        request = self.confirmation_for(port, force, container=container)
        if not self._approved(request, confirm):
            return KillOutcome(port=port, status=KillStatus.CANCELLED, container=container)

        try:
            self.stop_container(container.name)
        except DockerError as e:
            self.logger.error(f"Stopping container {container.name} on port {port} failed: {e}")
            return KillOutcome(port=port, status=KillStatus.FAILED, container=container, error=e)
        return KillOutcome(port=port, status=KillStatus.STOPPED, container=container)

    @staticmethod
    def _approved(request: ConfirmationRequest, confirm: Optional[ConfirmCallback]) -> bool:
        if request.level == ConfirmationLevel.NONE:
            return True
        if confirm is None:
            return False
        return request.accepts(confirm(request))
