"""
Portwarden Data Contracts
Defines the structure of the data shared between the enumerator, enricher,
correlator, classifier and container modules.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Protocol(str, Enum):
    TCP = "TCP"
    UDP = "UDP"


class RiskLevel(int, Enum):
    """Danger of killing a service, ordered by severity."""
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return {
            RiskLevel.LOW: "Low Risk",
            RiskLevel.MEDIUM: "Medium Risk",
            RiskLevel.HIGH: "High Risk",
            RiskLevel.CRITICAL: "CRITICAL",
        }[self]


class Connection(BaseModel):
    """One row of the OS connection table."""
    model_config = ConfigDict(frozen=True)

    protocol: Protocol
    local_address: str
    local_port: int = Field(ge=1, le=65535)
    remote_address: Optional[str] = None
    remote_port: Optional[int] = None
    state: str
    pid: Optional[int] = None

    @property
    def is_listening(self) -> bool:
        if self.protocol == Protocol.UDP:
            return True
        return self.state.upper() in ("LISTEN", "LISTENING")


class ProcessInfo(BaseModel):
    name: str
    path: Optional[str] = None
    user: Optional[str] = None
    memory_mb: float = 0.0
    cpu_percent: float = 0.0
    uptime_secs: int = 0
    parent_pid: Optional[int] = None
    parent_name: Optional[str] = None

    @classmethod
    def unknown(cls) -> "ProcessInfo":
        """Placeholder for a process that exited before it could be inspected."""
        return cls(name="<unknown>")


class PortInfo(BaseModel):
    """A listening port and the process that owns it. Immutable snapshot value."""
    model_config = ConfigDict(frozen=True)

    port: int = Field(ge=1, le=65535)
    protocol: str
    pid: int
    process_name: str
    process_path: Optional[str] = None
    local_address: str
    remote_address: Optional[str] = None
    state: str
    user: Optional[str] = None
    memory_mb: float = 0.0
    cpu_percent: float = 0.0
    uptime_secs: int = 0
    parent_pid: Optional[int] = None
    parent_name: Optional[str] = None

    def uptime_display(self) -> str:
        secs = self.uptime_secs
        if secs < 60:
            return f"{secs}s"
        if secs < 3600:
            return f"{secs // 60}m {secs % 60}s"
        if secs < 86400:
            return f"{secs // 3600}h {(secs % 3600) // 60}m"
        return f"{secs // 86400}d {(secs % 86400) // 3600}h"

    def to_dict(self) -> Dict[str, Any]:
        """Export form: all fields, parent_pid/parent_name only when known."""
        data = self.model_dump()
        for key in ("parent_pid", "parent_name"):
            if data[key] is None:
                del data[key]
        return data


class ServiceInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    port: int
    name: str
    description: str
    risk: RiskLevel
    process_hints: Tuple[str, ...] = ()


class PortMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    host_port: Optional[int] = None
    container_port: int
    protocol: str = "tcp"


class ContainerInfo(BaseModel):
    """
    A running container. 'id' changes when the container is recreated, so
    identity across snapshots uses name + image.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    image: str
    status: str
    ports: List[PortMapping] = []

    @property
    def stable_key(self) -> str:
        return f"{self.name}:{self.image}"

    def matches(self, other: "ContainerInfo") -> bool:
        return self.name == other.name and self.image == other.image

    def published_ports(self) -> List[str]:
        return [
            f"{p.host_port}:{p.container_port}/{p.protocol}"
            for p in self.ports if p.host_port is not None
        ]


class ProcessTreeNode(BaseModel):
    pid: int
    name: str
    is_target: bool = False
    children: List["ProcessTreeNode"] = []


class KillStatus(str, Enum):
    NOT_FOUND = "not_found"
    CANCELLED = "cancelled"
    DRY_RUN = "dry_run"
    KILLED = "killed"
    STOPPED = "stopped"
    FAILED = "failed"


class ConfirmationLevel(str, Enum):
    NONE = "none"            # forced, or confirmation disabled in config
    YES_NO = "yes_no"        # 'y' or 'yes', any case
    TYPED_YES = "typed_yes"  # the word 'yes', any case
    EXACT_YES = "exact_yes"  # exactly 'yes'


class ConfirmationRequest(BaseModel):
    """What the caller is asked to approve before the engine acts."""
    model_config = ConfigDict(frozen=True)

    port: int
    level: ConfirmationLevel
    port_info: Optional[PortInfo] = None
    container: Optional[ContainerInfo] = None
    service: Optional[ServiceInfo] = None

    @property
    def prompt(self) -> str:
        if self.container is not None:
            if self.level == ConfirmationLevel.EXACT_YES:
                return f"Type 'yes' to stop container {self.container.name}: "
            return f"Stop container {self.container.name}? [y/N]: "
        target = f"{self.port_info.pid} ({self.port_info.process_name})" if self.port_info else str(self.port)
        if self.level == ConfirmationLevel.TYPED_YES:
            return f"Kill CRITICAL process {target}? Type 'yes' to confirm: "
        return f"Kill process {target}? [y/N] "

    def accepts(self, answer: str) -> bool:
        if self.level == ConfirmationLevel.NONE:
            return True
        if self.level == ConfirmationLevel.EXACT_YES:
            return answer.strip() == "yes"
        if self.level == ConfirmationLevel.TYPED_YES:
            return answer.strip().lower() == "yes"
        return answer.strip().lower() in ("y", "yes")


class KillOutcome(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    port: int
    status: KillStatus
    port_info: Optional[PortInfo] = None
    container: Optional[ContainerInfo] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.status in (KillStatus.KILLED, KillStatus.STOPPED)


ProcessTreeNode.model_rebuild()
