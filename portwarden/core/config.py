from typing import Any, Dict, Optional
import yaml
import os
import sys
from dotenv import load_dotenv

from portwarden.core.exceptions import ConfigError

DEFAULT_CONFIG_CONTENT = """\
# portwarden configuration

defaults:
  # Ask before killing (set to false to always force)
  confirm: true
  # Signal used by kill when no explicit choice is made: SIGTERM or SIGKILL
  signal: SIGTERM

engine:
  # Seconds allowed for ss/netstat/lsof/taskkill
  tool_timeout: 10
  # Worker threads used to enrich PIDs (1 = sequential)
  enrich_workers: 1

docker:
  # Seconds allowed for one Docker API round trip
  timeout: 5
  # Grace period given to a container before it is killed
  stop_timeout: 10

aliases:
  # Port aliases for quick access
  # react: 3000
  # postgres: 5432
"""


def default_config_path() -> Optional[str]:
    """Per-platform location of config.yaml, or None when no home is known."""
    if sys.platform == "win32":
        appdata = os.getenv("APPDATA")
        return os.path.join(appdata, "portwarden", "config.yaml") if appdata else None
    home = os.getenv("HOME")
    return os.path.join(home, ".config", "portwarden", "config.yaml") if home else None


class Config:
    """
    Loads configuration from environment variables (Priority 1) and 'config.yaml' (Priority 2).
    Missing files fall back to built-in defaults; malformed values raise ConfigError.
    """
    def __init__(self, config_path: Optional[str] = None, load_env: bool = True) -> None:
        if load_env:
            load_dotenv(override=False)

        self.config_path = config_path or os.getenv("PORTWARDEN_CONFIG") or default_config_path()
        self.data = self._load_yaml()

    def _load_yaml(self) -> Dict[str, Any]:
        if not self.config_path or not os.path.exists(self.config_path):
            return {}
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"cannot parse {self.config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{self.config_path} must contain a mapping at top level")
        return data

    def _section(self, name: str) -> Dict[str, Any]:
        section = self.data.get(name) or {}
        if not isinstance(section, dict):
            raise ConfigError(
                f"section {name!r} in {self.config_path} must be a mapping, got {type(section).__name__}"
            )
        return section

    def _number(self, env_key: str, section: str, key: str, default: float) -> float:
        raw = os.getenv(env_key, self._section(section).get(key, default))
        try:
            value = float(raw)
        except (TypeError, ValueError):
            raise ConfigError(f"{section}.{key} must be a number, got {raw!r}")
        if value <= 0:
            raise ConfigError(f"{section}.{key} must be positive, got {raw!r}")
        return value

    @property
    def confirm(self) -> bool:
        raw = os.getenv("PORTWARDEN_CONFIRM", self._section("defaults").get("confirm", True))
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() not in ("0", "false", "no", "off")

    @property
    def default_signal(self) -> str:
        signal_name = str(os.getenv("PORTWARDEN_SIGNAL", self._section("defaults").get("signal", "SIGTERM"))).upper()
        if signal_name not in ("SIGTERM", "SIGKILL"):
            raise ConfigError(f"defaults.signal must be SIGTERM or SIGKILL, got {signal_name!r}")
        return signal_name

    @property
    def tool_timeout(self) -> float:
        return self._number("PORTWARDEN_TOOL_TIMEOUT", "engine", "tool_timeout", 10)

    @property
    def enrich_workers(self) -> int:
        return int(self._number("PORTWARDEN_ENRICH_WORKERS", "engine", "enrich_workers", 1))

    @property
    def docker_timeout(self) -> float:
        return self._number("PORTWARDEN_DOCKER_TIMEOUT", "docker", "timeout", 5)

    @property
    def docker_stop_timeout(self) -> int:
        return int(self._number("PORTWARDEN_DOCKER_STOP_TIMEOUT", "docker", "stop_timeout", 10))

    @property
    def docker_socket(self) -> str:
        default = r"\\.\pipe\docker_engine" if sys.platform == "win32" else "/var/run/docker.sock"
        return os.getenv("PORTWARDEN_DOCKER_SOCKET", self._section("docker").get("socket", default))

    @property
    def aliases(self) -> Dict[str, int]:
        aliases = {}
        for name, port in self._section("aliases").items():
            try:
                port = int(port)
            except (TypeError, ValueError):
                raise ConfigError(f"alias {name!r} must map to a port number, got {port!r}")
            if not 1 <= port <= 65535:
                raise ConfigError(f"alias {name!r} maps to out-of-range port {port}")
            aliases[str(name).lower()] = port
        return aliases

    def resolve_alias(self, alias: str) -> Optional[int]:
        return self.aliases.get(alias.strip().lower())

    def write_default(self) -> str:
        """Create the config file with commented defaults if it does not exist yet."""
        if not self.config_path:
            raise ConfigError("no configuration path available (HOME/APPDATA unset)")
        if not os.path.exists(self.config_path):
            os.makedirs(os.path.dirname(self.config_path), exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                f.write(DEFAULT_CONFIG_CONTENT)
        return self.config_path
