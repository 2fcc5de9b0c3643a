# portwarden/modules/service_catalog.py
"""
Well-known service table used to warn before killing what listens on a port.
Static domain knowledge: the table is built once at import and never mutated.
"""
from typing import Optional, Tuple

from portwarden.core.schemas import RiskLevel, ServiceInfo

# (port, name, description, risk when killed, typical process names)
_SERVICE_TABLE = [
    # Web servers
    (80, "HTTP", "Web server (Apache, Nginx, IIS)", RiskLevel.MEDIUM, ("nginx", "apache", "httpd", "iis")),
    (443, "HTTPS", "Secure web server", RiskLevel.MEDIUM, ("nginx", "apache", "httpd", "iis")),
    (8080, "HTTP Alt", "Alternative HTTP / Development server", RiskLevel.LOW, ("java", "node", "python")),
    (8443, "HTTPS Alt", "Alternative HTTPS", RiskLevel.LOW, ("java", "node")),
    # Databases
    (3306, "MySQL", "MySQL/MariaDB database server", RiskLevel.CRITICAL, ("mysqld", "mariadbd", "mysql")),
    (5432, "PostgreSQL", "PostgreSQL database server", RiskLevel.CRITICAL, ("postgres", "postgresql")),
    (27017, "MongoDB", "MongoDB database server", RiskLevel.CRITICAL, ("mongod", "mongodb")),
    (6379, "Redis", "Redis in-memory data store", RiskLevel.HIGH, ("redis-server", "redis")),
    (9200, "Elasticsearch", "Elasticsearch search engine", RiskLevel.HIGH, ("elasticsearch", "java")),
    (1433, "MSSQL", "Microsoft SQL Server", RiskLevel.CRITICAL, ("sqlservr", "mssql")),
    (1521, "Oracle", "Oracle Database", RiskLevel.CRITICAL, ("oracle", "tnslsnr")),
    (5984, "CouchDB", "Apache CouchDB", RiskLevel.HIGH, ("couchdb", "beam")),
    (7474, "Neo4j", "Neo4j Graph Database", RiskLevel.HIGH, ("neo4j", "java")),
    # Message queues
    (5672, "RabbitMQ", "RabbitMQ message broker", RiskLevel.HIGH, ("rabbitmq", "beam", "erlang")),
    (9092, "Kafka", "Apache Kafka message broker", RiskLevel.HIGH, ("kafka", "java")),
    (4222, "NATS", "NATS message broker", RiskLevel.MEDIUM, ("nats-server", "nats")),
    # Development tools
    (3000, "Dev Server", "Node.js / React / Rails dev server", RiskLevel.LOW, ("node", "ruby", "rails")),
    (4200, "Angular", "Angular development server", RiskLevel.LOW, ("node", "ng")),
    (5000, "Flask/ASP.NET", "Flask or ASP.NET development server", RiskLevel.LOW, ("python", "flask", "dotnet")),
    (5173, "Vite", "Vite development server", RiskLevel.LOW, ("node", "vite")),
    (8000, "Django/PHP", "Django or PHP development server", RiskLevel.LOW, ("python", "django", "php")),
    (9000, "PHP-FPM", "PHP FastCGI Process Manager", RiskLevel.MEDIUM, ("php-fpm", "php")),
    # Container & orchestration
    (2375, "Docker", "Docker daemon (unencrypted)", RiskLevel.CRITICAL, ("dockerd", "docker")),
    (2376, "Docker TLS", "Docker daemon (TLS)", RiskLevel.CRITICAL, ("dockerd", "docker")),
    (6443, "Kubernetes", "Kubernetes API server", RiskLevel.CRITICAL, ("kube-apiserver", "k8s")),
    (10250, "Kubelet", "Kubernetes Kubelet", RiskLevel.CRITICAL, ("kubelet",)),
    # System services
    (22, "SSH", "Secure Shell server", RiskLevel.CRITICAL, ("sshd", "ssh")),
    (21, "FTP", "FTP server", RiskLevel.MEDIUM, ("vsftpd", "proftpd", "ftpd")),
    (23, "Telnet", "Telnet server (insecure)", RiskLevel.MEDIUM, ("telnetd",)),
    (25, "SMTP", "Email server (SMTP)", RiskLevel.HIGH, ("postfix", "sendmail", "exim")),
    (53, "DNS", "Domain Name System", RiskLevel.CRITICAL, ("named", "bind", "dnsmasq")),
    (67, "DHCP", "DHCP server", RiskLevel.CRITICAL, ("dhcpd", "dnsmasq")),
    (123, "NTP", "Network Time Protocol", RiskLevel.HIGH, ("ntpd", "chronyd")),
    (135, "RPC", "Windows RPC Endpoint Mapper", RiskLevel.CRITICAL, ("svchost",)),
    (139, "NetBIOS", "Windows NetBIOS Session", RiskLevel.HIGH, ("smbd", "svchost")),
    (445, "SMB", "Windows File Sharing (SMB)", RiskLevel.CRITICAL, ("smbd", "svchost", "System")),
    (3389, "RDP", "Windows Remote Desktop", RiskLevel.CRITICAL, ("svchost", "TermService")),
    # Monitoring & observability
    (9090, "Prometheus", "Prometheus monitoring", RiskLevel.MEDIUM, ("prometheus",)),
    (3100, "Loki", "Grafana Loki log aggregation", RiskLevel.MEDIUM, ("loki",)),
    (3001, "Grafana", "Grafana dashboard (alt port)", RiskLevel.MEDIUM, ("grafana",)),
    (9093, "Alertmanager", "Prometheus Alertmanager", RiskLevel.MEDIUM, ("alertmanager",)),
    (16686, "Jaeger", "Jaeger tracing UI", RiskLevel.LOW, ("jaeger",)),
    # AI/ML
    (11434, "Ollama", "Ollama LLM server", RiskLevel.LOW, ("ollama",)),
    (1234, "LM Studio", "LM Studio local LLM", RiskLevel.LOW, ("lm studio", "lmstudio")),
    (8888, "Jupyter", "Jupyter Notebook server", RiskLevel.LOW, ("jupyter", "python")),
    # Caching
    (11211, "Memcached", "Memcached cache server", RiskLevel.HIGH, ("memcached",)),
    # Version control
    (9418, "Git", "Git protocol daemon", RiskLevel.MEDIUM, ("git-daemon",)),
    # Proxy
    (8888, "Proxy", "HTTP Proxy server", RiskLevel.MEDIUM, ("squid", "privoxy")),
    (1080, "SOCKS", "SOCKS proxy", RiskLevel.MEDIUM, ("socks", "dante")),
]

KNOWN_SERVICES: Tuple[ServiceInfo, ...] = tuple(
    ServiceInfo(port=port, name=name, description=desc, risk=risk, process_hints=hints)
    for port, name, desc, risk, hints in _SERVICE_TABLE
)


def classify(port: int) -> Optional[ServiceInfo]:
    """First table entry for the port (8888 resolves to Jupyter, not Proxy)."""
    for service in KNOWN_SERVICES:
        if service.port == port:
            return service
    return None


def all_services() -> Tuple[ServiceInfo, ...]:
    return KNOWN_SERVICES


def requires_confirmation(port: int) -> bool:
    """High and Critical services must be confirmed before they are killed."""
    service = classify(port)
    return service is not None and service.risk >= RiskLevel.HIGH


def short_name(port: int) -> Optional[str]:
    service = classify(port)
    return service.name if service else None


def warning(port: int) -> Optional[str]:
    """Plain-text warning line, e.g. 'MySQL - MySQL/MariaDB database server (CRITICAL)'."""
    service = classify(port)
    if service is None:
        return None
    return f"{service.name} - {service.description} ({service.risk.label})"


def matches_process(service: ServiceInfo, process_name: str) -> bool:
    """True when the owning process looks like the service usually bound to this port."""
    name = process_name.lower()
    return any(hint.lower() in name for hint in service.process_hints)
