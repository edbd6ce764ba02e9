"""
Postman MCP Configuration — Unified settings for the MCP server

Load order: CLI flags > env vars > ./.env > ~/.postman-mcp/config.env > defaults
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from postman_mcp import __version__


def _load_env_file(path: Path):
    """Load key=value pairs from an env file without overriding the environment."""
    if not path.is_file():
        return
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" in line:
            key, _, value = line.partition("=")
            key = key.strip()
            if key.startswith("export "):
                key = key[len("export "):].strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


def _home_dir() -> Path:
    return Path(os.environ.get("POSTMAN_MCP_HOME", str(Path.home() / ".postman-mcp")))


def load_config_env(home: Optional[Path] = None):
    """Load ./.env, then ~/.postman-mcp/config.env."""
    _load_env_file(Path.cwd() / ".env")
    _load_env_file((home or _home_dir()) / "config.env")


# Load env files before Config reads env vars
load_config_env()


class ConfigError(Exception):
    """Startup misconfiguration. Fatal: the process exits with code 1."""


class InvalidRegionError(ConfigError):
    def __init__(self, region: str):
        self.region = region
        super().__init__(
            f"Invalid region: {region}. Supported regions: {', '.join(SUPPORTED_REGIONS)}"
        )


SUPPORTED_REGIONS: Dict[str, str] = {
    "us": "https://api.postman.com",
    "eu": "https://api.eu.postman.com",
}

DEFAULT_BASE_URL = SUPPORTED_REGIONS["us"]
DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_SSE_PATH = "/sse"
DEFAULT_MESSAGES_PATH = "/messages"

TRANSPORT_STDIO = "stdio"
TRANSPORT_SSE = "sse"

TIER_MINIMAL = "minimal"
TIER_FULL = "full"


class Config:
    # Server identity
    SERVER_NAME = "postman-mcp-server"
    SERVER_VERSION = __version__
    USER_AGENT = f"{SERVER_NAME}/{SERVER_VERSION}"
    PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")

    # Paths
    HOME_DIR = _home_dir()

    # Logging: NEVER to stdout, it carries the stdio protocol
    LOG_LEVEL = os.environ.get("POSTMAN_MCP_LOG_LEVEL", "INFO").upper()
    LOG_FILE = os.environ.get("POSTMAN_MCP_LOG_FILE") or None

    # Backend request timeout (seconds)
    REQUEST_TIMEOUT = float(os.environ.get("POSTMAN_MCP_REQUEST_TIMEOUT", "30"))

    @classmethod
    def ensure_dirs(cls):
        """Create required directories."""
        cls.HOME_DIR.mkdir(parents=True, exist_ok=True)


def resolve_region(region: str) -> str:
    """Map a short region code to the Postman API base URL."""
    try:
        return SUPPORTED_REGIONS[region]
    except KeyError:
        raise InvalidRegionError(region) from None


def normalize_http_path(path: str) -> str:
    if not path.startswith("/"):
        return f"/{path}"
    return path


def parse_list(value: Optional[str]) -> Optional[List[str]]:
    """Split a comma-separated option; None when nothing usable is left."""
    if not value:
        return None
    items = [item.strip() for item in value.split(",")]
    items = [item for item in items if item]
    return items or None


def parse_port(value) -> int:
    if value is None or value == "":
        return DEFAULT_PORT
    try:
        port = int(str(value).strip())
    except ValueError:
        raise ConfigError(f"Invalid port value: {value}") from None
    if not 0 < port < 65536:
        raise ConfigError(f"Invalid port value: {value}")
    return port


@dataclass
class ServerSettings:
    """Resolved startup configuration for one server process."""

    transport: str = TRANSPORT_STDIO
    tier: str = TIER_MINIMAL
    region: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    api_key: Optional[str] = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    sse_path: str = DEFAULT_SSE_PATH
    messages_path: str = DEFAULT_MESSAGES_PATH
    allowed_hosts: Optional[List[str]] = None
    allowed_origins: Optional[List[str]] = None
    dns_protection: bool = False

    @property
    def is_http(self) -> bool:
        return self.transport == TRANSPORT_SSE

    @classmethod
    def build(
        cls,
        *,
        http: bool = False,
        full: bool = False,
        region: Optional[str] = None,
        api_key: Optional[str] = None,
        host: Optional[str] = None,
        port=None,
        sse_path: Optional[str] = None,
        messages_path: Optional[str] = None,
        allowed_hosts: Optional[str] = None,
        allowed_origins: Optional[str] = None,
        dns_protection: bool = False,
    ) -> "ServerSettings":
        """Validate raw option values. Raises ConfigError on misconfiguration."""
        transport = TRANSPORT_SSE if http else TRANSPORT_STDIO

        if region:
            base_url = resolve_region(region)
        else:
            base_url = os.environ.get("POSTMAN_API_BASE_URL") or DEFAULT_BASE_URL

        api_key = (api_key or "").strip() or None
        if api_key is None and transport == TRANSPORT_STDIO:
            raise ConfigError("POSTMAN_API_KEY environment variable is required for STDIO mode")

        settings = cls(
            transport=transport,
            tier=TIER_FULL if full else TIER_MINIMAL,
            region=region or None,
            base_url=base_url,
            api_key=api_key,
        )

        if transport == TRANSPORT_SSE:
            settings.host = host or DEFAULT_HOST
            settings.port = parse_port(port)
            settings.sse_path = normalize_http_path(sse_path or DEFAULT_SSE_PATH)
            settings.messages_path = normalize_http_path(messages_path or DEFAULT_MESSAGES_PATH)
            settings.allowed_hosts = parse_list(allowed_hosts)
            settings.allowed_origins = parse_list(allowed_origins)
            settings.dns_protection = dns_protection

        return settings
