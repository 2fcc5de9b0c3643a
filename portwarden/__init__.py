"""
portwarden - find out which process owns a listening port, and stop it safely.

Module-level shortcuts use one lazily built Engine with the default Config.
"""
from typing import List, Optional, Tuple

from portwarden.agent.engine import Engine, parse_port, parse_port_range
from portwarden.core.exceptions import (
    DockerError,
    DockerNotAvailable,
    InvalidPort,
    InvalidPortRange,
    KillError,
    NetworkError,
    PermissionDenied,
    PortwardenError,
    ProcessNotFound,
)
from portwarden.core.schemas import ContainerInfo, PortInfo, RiskLevel, ServiceInfo
from portwarden.modules.container_monitor import is_critical_container
from portwarden.modules.service_catalog import classify, requires_confirmation

__version__ = "0.4.0"

_engine: Optional[Engine] = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = Engine()
    return _engine


def list_ports(protocol: Optional[str] = None) -> List[PortInfo]:
    return get_engine().list_ports(protocol)


def port_info(port: int) -> Optional[PortInfo]:
    return get_engine().port_info(port)


def kill(pid: int, forceful: bool = False) -> None:
    get_engine().kill(pid, forceful)


def process_tree(pid: int) -> Tuple[List[Tuple[int, str]], List[Tuple[int, str]]]:
    return get_engine().process_tree(pid)


def container_for_port(port: int) -> Optional[ContainerInfo]:
    return get_engine().container_for_port(port)


def stop_container(name: str) -> None:
    get_engine().stop_container(name)
