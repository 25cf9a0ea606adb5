import getpass

import pytest

from exasol_client.auth import DRIVER_NAME, AuthManager, encrypt_password
from exasol_client.config import ConnectionConfig
from exasol_client.errors import HandshakeFailed
from exasol_client.logger import create_logger
from exasol_client.types import PublicKeyResponse


class RecordingLogger:
    def __init__(self) -> None:
        self.warnings: list[str] = []

    def warn(self, msg: str, *args) -> None:
        self.warnings.append(msg % args)


def test_prelogin_command_depends_on_credentials() -> None:
    password = AuthManager(ConnectionConfig(user="u", password="p"), create_logger())
    token = AuthManager(ConnectionConfig(refresh_token="r"), create_logger())
    assert password.prelogin_command() == {"command": "login", "protocolVersion": 2}
    assert token.prelogin_command() == {"command": "loginToken", "protocolVersion": 3}


def test_refresh_token_request() -> None:
    manager = AuthManager(ConnectionConfig(refresh_token="r", client_name="etl", query_timeout=60), create_logger())
    request = manager.auth_request()
    assert request["refreshToken"] == "r"
    assert "password" not in request
    assert request["driverName"] == DRIVER_NAME
    assert request["clientName"] == "etl"
    assert request["useCompression"] is False
    assert request["attributes"]["queryTimeout"] == 60


def test_password_login_needs_public_key() -> None:
    manager = AuthManager(ConnectionConfig(user="u", password="p"), create_logger())
    with pytest.raises(HandshakeFailed):
        manager.auth_request()


def test_invalid_public_key_fails_handshake() -> None:
    with pytest.raises(HandshakeFailed):
        encrypt_password("secret", PublicKeyResponse(modulus="zz", exponent="10001"))


def test_os_user_lookup_failure_is_logged(monkeypatch: pytest.MonkeyPatch) -> None:
    def no_user() -> str:
        raise OSError("no passwd entry")

    monkeypatch.setattr(getpass, "getuser", no_user)
    sink = RecordingLogger()
    request = AuthManager(ConnectionConfig(access_token="a"), create_logger(logger=sink)).auth_request()
    assert "clientOsUsername" not in request
    assert sink.warnings == ["could not get current OS user: no passwd entry"]
