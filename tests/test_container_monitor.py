# tests/test_container_monitor.py
import time

import pytest
from unittest.mock import MagicMock, patch

from docker.errors import DockerException, NotFound
from requests.exceptions import ConnectionError as RequestsConnectionError

from portwarden.core.exceptions import DockerError, DockerNotAvailable
from portwarden.core.schemas import ContainerInfo
from portwarden.modules.container_monitor import DockerMonitor, is_critical_container

POSTGRES = {
    "Id": "abc123def456789000",
    "Names": ["/my-postgres"],
    "Image": "postgres:15-alpine",
    "Status": "Up 2 hours",
    "Ports": [
        {"IP": "0.0.0.0", "PrivatePort": 5432, "PublicPort": 5432, "Type": "tcp"},
        {"IP": "::", "PrivatePort": 5432, "PublicPort": 5432, "Type": "tcp"},
    ],
}

WEB = {
    "Id": "fff000111222333444",
    "Names": ["/web"],
    "Image": "nginx:latest",
    "Status": "Up 5 minutes",
    "Ports": [
        {"PrivatePort": 443, "Type": "tcp"},
        {"IP": "0.0.0.0", "PrivatePort": 80, "PublicPort": 8080, "Type": "tcp"},
    ],
}


@pytest.fixture
def socket_file(tmp_path):
    path = tmp_path / "docker.sock"
    path.write_text("")
    return str(path)


@pytest.fixture
def client():
    client = MagicMock()
    client.containers.list.return_value = [MagicMock(attrs=POSTGRES), MagicMock(attrs=WEB)]
    return client


@pytest.fixture
def monitor(socket_file, client):
    mon = DockerMonitor(socket_path=socket_file, timeout=2)
    with patch.object(DockerMonitor, "_client", return_value=client):
        yield mon


def test_available_checks_socket(tmp_path, socket_file):
    assert DockerMonitor(socket_path=socket_file).available()
    assert not DockerMonitor(socket_path=str(tmp_path / "missing.sock")).available()


def test_list_all_parses_summaries(monitor, client):
    containers = monitor.list_all()

    assert [c.name for c in containers] == ["my-postgres", "web"]
    pg = containers[0]
    assert pg.id == "abc123def456"
    assert pg.image == "postgres:15-alpine"
    assert pg.status == "Up 2 hours"
    # v4/v6 duplicates collapse into one mapping
    assert len(pg.ports) == 1
    assert pg.published_ports() == ["5432:5432/tcp"]
    assert containers[1].published_ports() == ["8080:80/tcp"]
    client.containers.list.assert_called_once_with(sparse=True)
    client.close.assert_called_once()


def test_find_for_port_matches_host_port(monitor):
    assert monitor.find_for_port(8080).name == "web"
    assert monitor.find_for_port(5432).name == "my-postgres"
    # container-side port only, not published
    assert monitor.find_for_port(80) is None
    assert monitor.find_for_port(443) is None


def test_find_for_port_degrades_on_failure(socket_file, client):
    client.containers.list.side_effect = DockerException("daemon exploded")
    mon = DockerMonitor(socket_path=socket_file)
    with patch.object(DockerMonitor, "_client", return_value=client):
        assert mon.find_for_port(5432) is None


def test_list_all_raises_docker_error(socket_file, client):
    client.containers.list.side_effect = DockerException("permission denied on socket")
    mon = DockerMonitor(socket_path=socket_file)
    with patch.object(DockerMonitor, "_client", return_value=client):
        with pytest.raises(DockerError) as exc:
            mon.list_all()
    assert "permission denied" in str(exc.value)
    client.close.assert_called_once()


def test_no_socket_means_no_api_call(tmp_path):
    mon = DockerMonitor(socket_path=str(tmp_path / "missing.sock"))
    with patch.object(DockerMonitor, "_client") as make_client:
        assert mon.find_for_port(5432) is None
        assert mon.list_all() == []
        with pytest.raises(DockerNotAvailable):
            mon.stop("my-postgres")
    make_client.assert_not_called()


def test_stop_addresses_container_by_name(monitor, client):
    monitor.stop("my-postgres")

    client.containers.get.assert_called_once_with("my-postgres")
    client.containers.get.return_value.stop.assert_called_once_with(timeout=10)


def test_stop_unknown_container(monitor, client):
    client.containers.get.side_effect = NotFound("no such container")
    with pytest.raises(DockerError) as exc:
        monitor.stop("ghost")
    assert "ghost" in str(exc.value)


@pytest.mark.parametrize("image, critical", [
    ("postgres:15-alpine", True),
    ("mysql:8.0", True),
    ("redis:7-alpine", True),
    ("bitnami/kafka:3", True),
    ("node:20-alpine", False),
    ("nginx:latest", False),
])
def test_critical_images(image, critical):
    container = ContainerInfo(id="abc123", name="c", image=image, status="Up")
    assert is_critical_container(container) is critical


def test_stop_waits_for_grace_period(socket_file, client):
    """A container using its grace period outlives the API timeout but still stops."""
    stopped = []

    def slow_stop(timeout):
        time.sleep(0.6)
        stopped.append(timeout)

    client.containers.get.return_value.stop.side_effect = slow_stop
    mon = DockerMonitor(socket_path=socket_file, timeout=0.2, stop_timeout=2)
    with patch.object(DockerMonitor, "_client", return_value=client):
        mon.stop("web")

    assert stopped == [2]


def test_stop_gives_up_after_api_timeout_plus_grace(socket_file, client):
    client.containers.get.return_value.stop.side_effect = lambda timeout: time.sleep(1)
    mon = DockerMonitor(socket_path=socket_file, timeout=0.1, stop_timeout=0.1)
    with patch.object(DockerMonitor, "_client", return_value=client):
        with pytest.raises(DockerError) as exc:
            mon.stop("web")
    assert "0.2s" in str(exc.value)


def test_transport_failure_becomes_docker_error(monitor, client):
    client.containers.get.return_value.stop.side_effect = RequestsConnectionError("daemon went away")
    with pytest.raises(DockerError) as exc:
        monitor.stop("web")
    assert "daemon went away" in str(exc.value)

    client.containers.list.side_effect = RequestsConnectionError("daemon went away")
    with pytest.raises(DockerError):
        monitor.list_all()
