# tests/test_service_catalog.py
import pytest

from portwarden.core.schemas import RiskLevel
from portwarden.modules import service_catalog


@pytest.mark.parametrize("port, name, risk", [
    (3306, "MySQL", RiskLevel.CRITICAL),
    (5432, "PostgreSQL", RiskLevel.CRITICAL),
    (27017, "MongoDB", RiskLevel.CRITICAL),
    (1433, "MSSQL", RiskLevel.CRITICAL),
    (1521, "Oracle", RiskLevel.CRITICAL),
    (22, "SSH", RiskLevel.CRITICAL),
    (53, "DNS", RiskLevel.CRITICAL),
    (67, "DHCP", RiskLevel.CRITICAL),
    (445, "SMB", RiskLevel.CRITICAL),
    (3389, "RDP", RiskLevel.CRITICAL),
    (2375, "Docker", RiskLevel.CRITICAL),
    (2376, "Docker TLS", RiskLevel.CRITICAL),
    (6443, "Kubernetes", RiskLevel.CRITICAL),
    (10250, "Kubelet", RiskLevel.CRITICAL),
    (6379, "Redis", RiskLevel.HIGH),
    (9200, "Elasticsearch", RiskLevel.HIGH),
    (5672, "RabbitMQ", RiskLevel.HIGH),
    (9092, "Kafka", RiskLevel.HIGH),
    (11211, "Memcached", RiskLevel.HIGH),
    (80, "HTTP", RiskLevel.MEDIUM),
    (3000, "Dev Server", RiskLevel.LOW),
    (5173, "Vite", RiskLevel.LOW),
    (8080, "HTTP Alt", RiskLevel.LOW),
])
def test_known_services(port, name, risk):
    service = service_catalog.classify(port)
    assert service is not None
    assert (service.port, service.name, service.risk) == (port, name, risk)


def test_unknown_port():
    assert service_catalog.classify(54321) is None
    assert service_catalog.short_name(65432) is None
    assert service_catalog.warning(65432) is None


def test_duplicate_entry_first_wins():
    assert service_catalog.classify(8888).name == "Jupyter"


def test_table_size():
    services = service_catalog.all_services()
    assert len(services) == 49
    assert all(1 <= s.port <= 65535 for s in services)


def test_requires_confirmation_iff_high_or_critical():
    for port in [s.port for s in service_catalog.KNOWN_SERVICES] + [1, 999, 54321, 65535]:
        service = service_catalog.classify(port)
        expected = service is not None and service.risk in (RiskLevel.HIGH, RiskLevel.CRITICAL)
        assert service_catalog.requires_confirmation(port) is expected, port


def test_requires_confirmation_examples():
    assert service_catalog.requires_confirmation(3306)
    assert service_catalog.requires_confirmation(22)
    assert service_catalog.requires_confirmation(6379)
    assert not service_catalog.requires_confirmation(3000)
    assert not service_catalog.requires_confirmation(80)
    assert not service_catalog.requires_confirmation(65432)


def test_short_name_and_warning():
    assert service_catalog.short_name(5432) == "PostgreSQL"
    assert service_catalog.short_name(11434) == "Ollama"
    assert service_catalog.warning(3306) == "MySQL - MySQL/MariaDB database server (CRITICAL)"


def test_process_hints():
    postgres = service_catalog.classify(5432)
    assert service_catalog.matches_process(postgres, "postgres")
    assert not service_catalog.matches_process(postgres, "node")
