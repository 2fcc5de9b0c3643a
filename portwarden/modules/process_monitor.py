# portwarden/modules/process_monitor.py
"""
Portwarden - Process Enricher
Resolves PIDs found on sockets into process details and ancestry.
"""
import time
import psutil
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple, TypeVar

from portwarden.core.schemas import ProcessInfo, ProcessTreeNode

MAX_TREE_DEPTH = 20

T = TypeVar("T")


def _field(getter: Callable[[], T], default: T) -> T:
    """Read one attribute, degrading to 'default' when the OS hides it from us."""
    try:
        return getter()
    except (psutil.AccessDenied, psutil.ZombieProcess):
        return default


def _name_of(pid: int) -> Optional[str]:
    try:
        return psutil.Process(pid).name()
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return None


class ProcessEnricher:
    """
    Looks up name, path, owner, resource usage and parent of a PID.

    CPU usage needs two samples. prime() takes the first sample for a batch
    of PIDs and waits 'cpu_interval' once; enrich() then reads the second.
    A PID that was not primed is sampled on its own, blocking for the interval.
    """

    def __init__(self, cpu_interval: float = 0.1):
        self.cpu_interval = cpu_interval
        self._primed: Dict[int, psutil.Process] = {}

    def prime(self, pids: Iterable[int]) -> None:
        self._primed = {}
        for pid in set(pids):
            try:
                proc = psutil.Process(pid)
                proc.cpu_percent(interval=None)
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
            self._primed[pid] = proc
        if self._primed:
            time.sleep(self.cpu_interval)

    def enrich(self, pid: int) -> ProcessInfo:
        """
        Never raises. A process that exited after enumeration yields the
        '<unknown>' placeholder.
        """
        try:
            proc = self._primed.get(pid)
            if proc is not None:
                cpu = _field(lambda: proc.cpu_percent(interval=None), 0.0)
            else:
                proc = psutil.Process(pid)
                cpu = _field(lambda: proc.cpu_percent(interval=self.cpu_interval), 0.0)
            # oneshot() caches cpu_times, so the CPU samples are taken outside it
            with proc.oneshot():
                name = proc.name()
                path = _field(proc.exe, None) or None
                user = _field(proc.username, None)
                rss = _field(lambda: proc.memory_info().rss, 0)
                created = _field(proc.create_time, None)
                ppid = _field(proc.ppid, None)
        except psutil.NoSuchProcess:
            return ProcessInfo.unknown()
        except psutil.AccessDenied:
            return ProcessInfo(name=_name_of(pid) or "<unknown>")

        uptime = max(0, int(time.time() - created)) if created else 0

        parent_pid, parent_name = None, None
        if ppid:
            parent_name = _name_of(ppid)
            if parent_name is not None:
                parent_pid = ppid

        return ProcessInfo(
            name=name,
            path=path,
            user=user,
            memory_mb=rss / 1024.0 / 1024.0,
            cpu_percent=cpu,
            uptime_secs=uptime,
            parent_pid=parent_pid,
            parent_name=parent_name,
        )


def get_parent_chain(pid: int, max_depth: int = MAX_TREE_DEPTH) -> List[Tuple[int, str]]:
    """
    Walks parent links upward starting at 'pid' itself.
    Stops at the root, at a PID already visited, or after max_depth entries,
    so a corrupted or cyclic process table cannot loop forever.
    """
    chain: List[Tuple[int, str]] = []
    visited: Set[int] = set()
    current: Optional[int] = pid

    while current is not None and current not in visited and len(chain) < max_depth:
        visited.add(current)
        try:
            proc = psutil.Process(current)
            chain.append((current, proc.name()))
            parent = proc.ppid()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            break
        # PID 0 is the kernel/idle pseudo-process, never a real parent
        current = parent if parent else None

    return chain


def get_child_processes(pid: int) -> List[Tuple[int, str]]:
    """Direct children of 'pid', ordered by PID."""
    children = []
    for proc in psutil.process_iter(['pid', 'ppid', 'name']):
        info = proc.info
        if info.get('ppid') == pid and info.get('pid') != pid:
            children.append((info['pid'], info.get('name') or "<unknown>"))
    children.sort()
    return children


def get_process_tree(pid: int) -> Tuple[List[Tuple[int, str]], List[Tuple[int, str]]]:
    """(ancestors starting with the target itself, direct children)."""
    return get_parent_chain(pid), get_child_processes(pid)


def build_process_tree(pid: int) -> Optional[ProcessTreeNode]:
    """
    Nested view for display: the outermost ancestor is the root, each level
    holds the next process down the chain, and the target carries its children.
    Returns None when the PID no longer exists.
    """
    chain, children = get_process_tree(pid)
    if not chain:
        return None

    node = ProcessTreeNode(
        pid=chain[0][0],
        name=chain[0][1],
        is_target=True,
        children=[ProcessTreeNode(pid=c_pid, name=c_name) for c_pid, c_name in children],
    )
    for anc_pid, anc_name in chain[1:]:
        node = ProcessTreeNode(pid=anc_pid, name=anc_name, children=[node])
    return node
