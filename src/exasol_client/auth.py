"""Login request construction: password encryption, tokens and client metadata."""

from __future__ import annotations

import base64
import getpass
import platform
from typing import Any

from cryptography.hazmat.primitives.asymmetric import padding, rsa

from . import commands
from .config import ConnectionConfig
from .errors import HandshakeFailed
from .logger import BoundLogger
from .types import PublicKeyResponse
from .version import __version__

DRIVER_NAME = f"exasol-client-python {__version__}"


def encrypt_password(password: str, public_key: PublicKeyResponse) -> str:
    """PKCS#1 v1.5 encrypt ``password`` with the server's RSA key, base64 encoded."""
    try:
        modulus = int(public_key.modulus, 16)
        exponent = int(public_key.exponent, 16)
        key = rsa.RSAPublicNumbers(exponent, modulus).public_key()
        ciphertext = key.encrypt(password.encode("utf-8"), padding.PKCS1v15())
    except ValueError as exc:
        raise HandshakeFailed(f"password encryption error: {exc}") from exc
    return base64.b64encode(ciphertext).decode("ascii")


class AuthManager:
    """Builds the login payloads for the configured credentials."""

    def __init__(self, config: ConnectionConfig, logger: BoundLogger) -> None:
        self._config = config
        self._logger = logger.child("auth")

    @property
    def uses_token(self) -> bool:
        return self._config.uses_token

    def prelogin_command(self) -> commands.Command:
        version = self._config.protocol_version
        if self.uses_token:
            return commands.login_token(version)
        return commands.login(version)

    def auth_request(self, public_key: PublicKeyResponse | None = None) -> dict[str, Any]:
        config = self._config
        request: dict[str, Any] = {
            "useCompression": False,
            "clientName": config.client_name,
            "driverName": DRIVER_NAME,
            "clientOs": platform.system(),
            "clientLanguage": "Python",
            "clientVersion": config.client_version or "(unknown version)",
            "clientRuntime": f"{platform.python_implementation()} {platform.python_version()}",
            "attributes": commands.attributes(
                autocommit=config.autocommit,
                current_schema=config.schema,
                compression_enabled=config.compression,
                query_timeout=config.query_timeout,
            ),
        }
        os_user = self._os_username()
        if os_user:
            request["clientOsUsername"] = os_user

        if config.access_token:
            self._logger.info("Logging in with access token")
            request["accessToken"] = config.access_token
        elif config.refresh_token:
            self._logger.info("Logging in with refresh token")
            request["refreshToken"] = config.refresh_token
        else:
            if public_key is None:
                raise HandshakeFailed("server public key is required for password login")
            self._logger.info("Logging in as user %s", config.user)
            request["username"] = config.user
            request["password"] = encrypt_password(config.password, public_key)
        return request

    def _os_username(self) -> str:
        try:
            return getpass.getuser()
        except Exception as exc:
            self._logger.warn("could not get current OS user: %s", exc)
            return ""


__all__ = ["AuthManager", "DRIVER_NAME", "encrypt_password"]
