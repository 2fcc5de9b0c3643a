"""
Container Monitor - Docker-aware port ownership

When a port is published by a container, the process holding the socket is
the Docker proxy, not the service. This module finds the container behind a
port so it can be stopped instead.

Containers are addressed by name, never by id: the id changes every time a
container is recreated, the name does not.

Every call opens its own client, runs in a throwaway worker thread bounded
by a timeout, and closes the client. Nothing is shared between calls.
"""

import os
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Callable, Dict, List, Optional, TypeVar

import docker
from docker.errors import DockerException, NotFound
from requests.exceptions import RequestException

from portwarden.core.exceptions import DockerError, DockerNotAvailable
from portwarden.core.schemas import ContainerInfo, PortMapping
from portwarden.utils.logger import Logger

T = TypeVar("T")

# Images whose data is lost or corrupted if stopped carelessly
CRITICAL_IMAGES = (
    "postgres", "mysql", "mariadb", "mongo", "redis",
    "elasticsearch", "rabbitmq", "kafka", "zookeeper",
    "consul", "vault", "etcd", "minio",
)


def is_critical_container(container: ContainerInfo) -> bool:
    image = container.image.lower()
    return any(name in image for name in CRITICAL_IMAGES)


def _container_from_summary(summary: Dict[str, Any]) -> ContainerInfo:
    """Builds ContainerInfo from one entry of the container list API."""
    names = summary.get("Names") or []
    name = names[0].lstrip("/") if names else "unknown"

    mappings: List[PortMapping] = []
    for entry in summary.get("Ports") or []:
        if entry.get("PrivatePort") is None:
            continue
        mapping = PortMapping(
            host_port=entry.get("PublicPort"),
            container_port=entry["PrivatePort"],
            protocol=(entry.get("Type") or "tcp").lower(),
        )
        # IPv4 and IPv6 bindings of the same port are reported separately
        if mapping not in mappings:
            mappings.append(mapping)

    return ContainerInfo(
        id=(summary.get("Id") or "")[:12],
        name=name,
        image=summary.get("Image") or "unknown",
        status=summary.get("Status") or "unknown",
        ports=mappings,
    )


class DockerMonitor:
    """Correlates listening ports with running Docker containers."""

    def __init__(self, socket_path: Optional[str] = None, timeout: float = 5.0,
                 stop_timeout: int = 10):
        if socket_path is None:
            socket_path = r"\\.\pipe\docker_engine" if os.name == "nt" else "/var/run/docker.sock"
        self.socket_path = socket_path
        self.timeout = timeout
        self.stop_timeout = stop_timeout
        self.logger = Logger()

    def available(self) -> bool:
        """Cheap presence check of the daemon socket; no API call."""
        return os.path.exists(self.socket_path)

    def _client(self) -> docker.DockerClient:
        timeout = max(1, int(self.timeout))
        if os.getenv("DOCKER_HOST"):
            return docker.from_env(timeout=timeout)
        scheme = "npipe://" if os.name == "nt" else "unix://"
        return docker.DockerClient(base_url=scheme + self.socket_path.replace("\\", "/"), timeout=timeout)

    def _call(self, action: Callable[[docker.DockerClient], T], timeout: Optional[float] = None) -> T:
        """
        Runs 'action' with a fresh client in a single-use worker thread,
        waiting at most 'timeout' seconds (the API timeout by default).
        SDK and transport failures and timeouts are raised as DockerError.
        """
        wait = self.timeout if timeout is None else timeout

        def work() -> T:
            client = self._client()
            try:
                return action(client)
            finally:
                client.close()

        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="docker-io")
        try:
            return pool.submit(work).result(timeout=wait)
        except FutureTimeout:
            raise DockerError(f"no answer from Docker daemon within {wait:g}s")
        except (DockerException, RequestException) as e:
            raise DockerError(str(e)) from e
        finally:
            pool.shutdown(wait=False)

    def _running_summaries(self, client: docker.DockerClient) -> List[Dict[str, Any]]:
        # sparse=True returns the list API payload without one inspect per container
        return [c.attrs for c in client.containers.list(sparse=True)]

    def list_all(self) -> List[ContainerInfo]:
        """Running containers with their port mappings. Empty when Docker is absent."""
        if not self.available():
            return []
        summaries = self._call(self._running_summaries)
        return [_container_from_summary(s) for s in summaries]

    def find_for_port(self, port: int) -> Optional[ContainerInfo]:
        """
        First running container publishing 'port' on the host.
        Never raises: any failure means "no container information".
        """
        if not self.available():
            return None
        try:
            containers = self.list_all()
        except Exception as e:
            self.logger.debug(f"DockerMonitor: lookup for port {port} failed: {e}")
            return None

        for container in containers:
            if any(m.host_port == port for m in container.ports):
                self.logger.info(f"DockerMonitor: port {port} is published by container {container.name}.")
                return container
        return None

    def stop(self, container_name: str) -> None:
        """Stops a container by name (the name survives recreation, the id does not)."""
        if not self.available():
            raise DockerNotAvailable(f"socket {self.socket_path} not found")

        def stop_by_name(client: docker.DockerClient) -> None:
            try:
                container = client.containers.get(container_name)
            except NotFound:
                raise DockerError(f"container '{container_name}' not found")
            container.stop(timeout=self.stop_timeout)

        # the daemon replies once the container exits, up to stop_timeout later
        self._call(stop_by_name, timeout=self.timeout + self.stop_timeout)
        self.logger.success(f"Container {container_name} stopped.")

    def is_critical(self, container: ContainerInfo) -> bool:
        return is_critical_container(container)
