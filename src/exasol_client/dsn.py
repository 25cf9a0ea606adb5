"""Connection string parsing: ``exa:<hosts>:<port>;key=value;...``."""

from __future__ import annotations

from .config import ConnectionConfig
from .errors import InvalidConnectionString

PREFIX = "exa:"
_ESCAPED_SEPARATOR = "\\;"
_PLACEHOLDER = "\x00"

_STRING_KEYS = {
    "user": "user",
    "password": "password",
    "accesstoken": "access_token",
    "refreshtoken": "refresh_token",
    "certificatefingerprint": "certificate_fingerprint",
    "clientname": "client_name",
    "clientversion": "client_version",
    "schema": "schema",
    "urlpath": "url_path",
}
_INT_KEYS = {
    "fetchsize": "fetch_size",
    "querytimeout": "query_timeout",
    "resultsetmaxrows": "result_set_max_rows",
}
_FLAG_KEYS = {
    "autocommit": "autocommit",
    "encryption": "encryption",
    "compression": "compression",
}


def parse_dsn(dsn: str) -> ConnectionConfig:
    if not dsn.startswith(PREFIX):
        raise InvalidConnectionString(f"invalid connection string, must start with 'exa:': '{dsn}'")

    address, _, parameters = dsn[len(PREFIX):].partition(";")
    host, port = _split_address(address)
    config = ConnectionConfig(host=host, port=port)
    if parameters:
        for parameter in _split_parameters(parameters):
            _apply_parameter(config, parameter)
    return config


def format_dsn(config: ConnectionConfig) -> str:
    parts = [f"{PREFIX}{config.host}:{config.port}"]
    if config.access_token:
        parts.append(f"accesstoken={_escape(config.access_token)}")
    elif config.refresh_token:
        parts.append(f"refreshtoken={_escape(config.refresh_token)}")
    else:
        parts.append(f"user={_escape(config.user)}")
        parts.append(f"password={_escape(config.password)}")

    for key, attr in _FLAG_KEYS.items():
        parts.append(f"{key}={int(getattr(config, attr))}")
    parts.append(f"validateservercertificate={int(config.validate_server_certificate)}")
    for key, attr in _INT_KEYS.items():
        value = getattr(config, attr)
        if value:
            parts.append(f"{key}={value}")
    for key in ("certificatefingerprint", "clientname", "clientversion", "schema", "urlpath"):
        value = getattr(config, _STRING_KEYS[key])
        if value:
            parts.append(f"{key}={_escape(value)}")
    for key, value in config.params.items():
        parts.append(f"{key}={_escape(value)}")
    return ";".join(parts)


def _split_address(address: str) -> tuple[str, int]:
    pieces = address.split(":")
    if len(pieces) != 2:
        raise InvalidConnectionString(
            f"invalid host or port in '{address}', expected format: <host>:<port>"
        )
    try:
        return pieces[0], int(pieces[1])
    except ValueError as exc:
        raise InvalidConnectionString(
            f"invalid `port` value '{pieces[1]}', numeric port expected"
        ) from exc


def _split_parameters(parameters: str) -> list[str]:
    guarded = parameters.replace(_ESCAPED_SEPARATOR, _PLACEHOLDER)
    return [item.replace(_PLACEHOLDER, _ESCAPED_SEPARATOR) for item in guarded.split(";") if item]


def _apply_parameter(config: ConnectionConfig, parameter: str) -> None:
    key, sep, raw = parameter.partition("=")
    if not sep:
        raise InvalidConnectionString(
            f"invalid parameter '{parameter}', expected format <parameter>=<value>"
        )
    value = _unescape(raw)
    if key in _STRING_KEYS:
        setattr(config, _STRING_KEYS[key], value)
    elif key in _FLAG_KEYS:
        setattr(config, _FLAG_KEYS[key], value == "1")
    elif key == "validateservercertificate":
        config.validate_server_certificate = value != "0"
    elif key in _INT_KEYS:
        try:
            setattr(config, _INT_KEYS[key], int(value))
        except ValueError as exc:
            raise InvalidConnectionString(f"invalid {key} value '{value}', numeric expected") from exc
    else:
        config.params[key] = value


def _escape(value: str) -> str:
    return value.replace(";", _ESCAPED_SEPARATOR)


def _unescape(value: str) -> str:
    return value.replace(_ESCAPED_SEPARATOR, ";")


__all__ = ["PREFIX", "format_dsn", "parse_dsn"]
