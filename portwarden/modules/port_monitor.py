# portwarden/modules/port_monitor.py
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from portwarden.core.schemas import Connection, PortInfo, ProcessInfo
from portwarden.modules.connection_enumerator import ConnectionEnumerator
from portwarden.modules.process_monitor import ProcessEnricher
from portwarden.utils.logger import Logger


class PortMonitor:
    """
    Port Correlator.
    Joins the enumerated socket table with process details into one PortInfo
    per port, sorted ascending. Every call is an independent snapshot.
    """
    def __init__(self, enumerator: ConnectionEnumerator,
                 enricher: Optional[ProcessEnricher] = None,
                 workers: int = 1):
        self.enumerator = enumerator
        self.enricher = enricher or ProcessEnricher()
        self.workers = max(1, workers)
        self.logger = Logger()

    def _enrich_all(self, pids: List[int]) -> List[ProcessInfo]:
        # one lookup per PID, even when it owns several sockets
        unique = list(dict.fromkeys(pids))
        self.enricher.prime(unique)
        if self.workers == 1 or len(unique) < 2:
            infos = [self.enricher.enrich(pid) for pid in unique]
        else:
            # map() keeps input order, so the final sort sees the same sequence
            with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="enrich") as pool:
                infos = list(pool.map(self.enricher.enrich, unique))
        by_pid = dict(zip(unique, infos))
        return [by_pid[pid] for pid in pids]

    def correlate(self, connections: List[Connection]) -> List[PortInfo]:
        """
        Drops sockets without a known owner, enriches the rest and keeps the
        first entry per port number after a stable sort. A TCP and a UDP bind
        on the same number therefore collapse into whichever was listed first.
        """
        owned = [c for c in connections if c.pid is not None]
        skipped = len(connections) - len(owned)
        if skipped:
            self.logger.debug(f"PortMonitor: {skipped} sockets without a visible owner skipped.")

        infos = self._enrich_all([c.pid for c in owned])

        results = []
        for conn, proc in zip(owned, infos):
            remote = None
            if conn.remote_address is not None:
                remote = f"{conn.remote_address}:{conn.remote_port or 0}"
            results.append(PortInfo(
                port=conn.local_port,
                protocol=conn.protocol.value,
                pid=conn.pid,
                process_name=proc.name,
                process_path=proc.path,
                local_address=f"{conn.local_address}:{conn.local_port}",
                remote_address=remote,
                state=conn.state,
                user=proc.user,
                memory_mb=proc.memory_mb,
                cpu_percent=proc.cpu_percent,
                uptime_secs=proc.uptime_secs,
                parent_pid=proc.parent_pid,
                parent_name=proc.parent_name,
            ))

        results.sort(key=lambda p: p.port)
        seen = set()
        unique = []
        for info in results:
            if info.port in seen:
                continue
            seen.add(info.port)
            unique.append(info)
        return unique

    def list_ports(self, protocol: Optional[str] = None) -> List[PortInfo]:
        """Full snapshot. 'protocol' ("tcp"/"udp") filters after deduplication."""
        ports = self.correlate(self.enumerator.enumerate())
        if protocol:
            wanted = protocol.upper()
            ports = [p for p in ports if p.protocol == wanted]
        self.logger.info(f"PortMonitor: {len(ports)} listening ports found.")
        return ports

    def port_info(self, port: int) -> Optional[PortInfo]:
        return next((p for p in self.list_ports() if p.port == port), None)

    def ports_in_range(self, start: int, end: int) -> List[PortInfo]:
        return [p for p in self.list_ports() if start <= p.port <= end]
