"""Connection settings shared by all components."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_PORT = 8563
DEFAULT_FETCH_SIZE_KIB = 2000


@dataclass
class ConnectionConfig:
    host: str = "localhost"
    port: int = DEFAULT_PORT
    user: str = ""
    password: str = ""
    access_token: str = ""
    refresh_token: str = ""
    client_name: str = "Python client"
    client_version: str = ""
    schema: str = ""
    autocommit: bool = True
    fetch_size: int = DEFAULT_FETCH_SIZE_KIB
    compression: bool = False
    result_set_max_rows: int = 0
    encryption: bool = True
    validate_server_certificate: bool = True
    certificate_fingerprint: str = ""
    query_timeout: int = 0
    url_path: str = ""
    params: dict[str, str] = field(default_factory=dict)

    @property
    def uses_token(self) -> bool:
        return bool(self.access_token or self.refresh_token)

    @property
    def protocol_version(self) -> int:
        return 3 if self.uses_token else 2

    @property
    def fetch_size_bytes(self) -> int:
        return self.fetch_size * 1024

    def to_dsn(self) -> str:
        from .dsn import format_dsn

        return format_dsn(self)


__all__ = ["DEFAULT_FETCH_SIZE_KIB", "DEFAULT_PORT", "ConnectionConfig"]
