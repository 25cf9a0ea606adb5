"""Authenticated protocol session and the request/response exchange."""

from __future__ import annotations

import enum
import threading
import weakref
import zlib
from typing import Any, Mapping, TypeVar, overload

import simplejson

from . import commands
from .auth import AuthManager
from .cancel import CancelScope
from .config import ConnectionConfig
from .errors import (
    BadConnection,
    Cancelled,
    ClosedConnection,
    CouldNotAbort,
    ExasolError,
    HandshakeFailed,
    NotConnected,
    ParseError,
    ProtocolViolation,
    SqlExecutionError,
)
from .hosts import candidate_hosts
from .logger import BoundLogger, create_logger
from .transport.base import Channel, TransportError
from .transport.websocket import DEFAULT_CONNECT_TIMEOUT, TlsOptions, connect_channel
from .types import AuthResponse, Decodable, PublicKeyResponse

T = TypeVar("T", bound=Decodable)

POLL_INTERVAL = 0.05


class SessionState(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    # Transport failed or a request was cancelled; the session must be recreated
    BROKEN = "broken"


class Session:
    """One logged-in session on one channel.

    The protocol is strictly request/response: ``send`` writes one command
    and blocks until its reply arrives, so a session never has more than
    one outstanding request.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        channel: Channel | None,
        *,
        logger: BoundLogger | Any | None = None,
    ) -> None:
        self.config = config
        self._channel = channel
        self._logger = create_logger(logger=logger).child("session")
        self._state = SessionState.CLOSED
        self._compression = False
        self._exchange_lock = threading.Lock()
        self.info: AuthResponse | None = None

    @classmethod
    def connect(
        cls,
        config: ConnectionConfig,
        *,
        logger: BoundLogger | Any | None = None,
        cancel: CancelScope | None = None,
        timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> Session:
        bound = create_logger(logger=logger)
        tls = None
        if config.encryption:
            tls = TlsOptions(
                validate_certificate=config.validate_server_certificate,
                fingerprint=config.certificate_fingerprint,
            )
        channel = connect_channel(
            candidate_hosts(config.host),
            config.port,
            tls=tls,
            url_path=config.url_path,
            timeout=timeout,
            logger=bound,
            cancel=cancel,
        )
        session = cls(config, channel, logger=bound)
        session.login(cancel=cancel)
        return session

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is SessionState.CLOSED

    @property
    def autocommit(self) -> bool:
        return self.config.autocommit

    @property
    def compression(self) -> bool:
        return self._compression

    def login(self, *, cancel: CancelScope | None = None) -> AuthResponse:
        auth = AuthManager(self.config, self._logger)
        self._state = SessionState.OPEN
        self._compression = False
        try:
            if auth.uses_token:
                self.send(auth.prelogin_command(), cancel=cancel)
                request = auth.auth_request()
            else:
                public_key = self.send(auth.prelogin_command(), PublicKeyResponse, cancel=cancel)
                request = auth.auth_request(public_key)
            info = self.send(request, AuthResponse, cancel=cancel)
        except (Cancelled, CouldNotAbort, HandshakeFailed):
            self._shutdown()
            raise
        except ExasolError as exc:
            self._shutdown()
            raise HandshakeFailed(f"failed to login: {exc}", context=exc) from exc
        self._compression = self.config.compression
        self.info = info
        self._logger.info("Logged in, session id %s", info.session_id)
        return info

    @overload
    def send(self, request: Mapping[str, Any], response_type: None = None, *, cancel: CancelScope | None = None) -> None: ...

    @overload
    def send(self, request: Mapping[str, Any], response_type: type[T], *, cancel: CancelScope | None = None) -> T: ...

    def send(
        self,
        request: Mapping[str, Any],
        response_type: type[T] | None = None,
        *,
        cancel: CancelScope | None = None,
    ) -> T | None:
        """Send one command and decode its ``responseData`` into ``response_type``."""
        if not self._exchange_lock.acquire(blocking=False):
            raise BadConnection("a request is already outstanding on this session")
        try:
            channel = self._usable_channel(request)
            self._write(channel, request)
            envelope = self._await_reply(channel, cancel)
        finally:
            self._exchange_lock.release()
        return self._decode(envelope, response_type)

    def close(self) -> None:
        if self._state is SessionState.CLOSED:
            return
        channel = self._channel
        if self._state is SessionState.OPEN and channel is not None:
            try:
                self._write(channel, commands.disconnect())
            except ExasolError as exc:
                self._logger.debug("Ignoring disconnect failure: %s", exc)
        self._shutdown()

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _usable_channel(self, request: Mapping[str, Any]) -> Channel:
        if self._state is SessionState.CLOSED:
            raise ClosedConnection("connection was closed")
        if self._state is SessionState.BROKEN:
            raise BadConnection("session is out of sync after a failure and must be recreated")
        if self._channel is None:
            raise NotConnected(f"could not send request '{request.get('command')}': not connected to server")
        return self._channel

    def _encode(self, request: Mapping[str, Any]) -> bytes:
        try:
            payload = simplejson.dumps(request, use_decimal=True).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise BadConnection(f"could not marshal request '{request.get('command')}': {exc}") from exc
        if self._compression:
            return zlib.compress(payload)
        return payload

    def _write(self, channel: Channel, request: Mapping[str, Any]) -> None:
        payload = self._encode(request)
        self._logger.debug("-> %s", request.get("command", "login"))
        try:
            channel.send(payload, binary=self._compression)
        except TransportError as exc:
            raise self._fatal(exc) from exc

    def _await_reply(self, channel: Channel, cancel: CancelScope | None) -> Mapping[str, Any]:
        if cancel is None:
            return self._read(channel)
        while True:
            if cancel.cancelled:
                self._abort(channel, cancel)
            try:
                ready = channel.wait_readable(POLL_INTERVAL)
            except TransportError as exc:
                raise self._fatal(exc) from exc
            if ready:
                return self._read(channel)

    def _abort(self, channel: Channel, cancel: CancelScope) -> None:
        # A late reply to the cancelled request may still arrive; it cannot be
        # told apart from the abort acknowledgement, so the session is retired.
        self._state = SessionState.BROKEN
        self._logger.warn("Request cancelled (%s), sending abortQuery", cancel.cause)
        try:
            channel.send(self._encode(commands.abort_query()), binary=self._compression)
        except TransportError as exc:
            raise CouldNotAbort(cancel.cause) from exc
        raise Cancelled(cancel.cause)

    def _read(self, channel: Channel) -> Mapping[str, Any]:
        try:
            message = channel.recv()
        except TransportError as exc:
            raise self._fatal(exc) from exc
        if self._compression:
            try:
                message = zlib.decompress(message)
            except zlib.error as exc:
                raise self._fatal(exc, "could not decode compressed data") from exc
        try:
            envelope = simplejson.loads(message)
        except ValueError as exc:
            raise self._fatal(exc, "could not decode json data") from exc
        if not isinstance(envelope, Mapping):
            raise self._fatal(TypeError(type(envelope).__name__), "response is not a JSON object")
        return envelope

    def _decode(self, envelope: Mapping[str, Any], response_type: type[T] | None) -> T | None:
        status = envelope.get("status")
        if status != "ok":
            exception = envelope.get("exception")
            if isinstance(exception, Mapping):
                raise SqlExecutionError(str(exception.get("sqlCode", "")), str(exception.get("text", "")))
            raise ProtocolViolation(f"unexpected response status '{status}'", status=status)
        if response_type is None:
            return None
        data = envelope.get("responseData")
        try:
            return response_type.from_dict(data)
        except ParseError:
            raise
        except (TypeError, ValueError, KeyError) as exc:
            raise ParseError(f"could not decode response data: {exc}", status=status) from exc

    def _fatal(self, exc: BaseException, what: str = "network failure") -> BadConnection:
        self._state = SessionState.BROKEN
        self._logger.error("%s: %s", what, exc)
        return BadConnection(f"{what}: {exc}")

    def _shutdown(self) -> None:
        self._state = SessionState.CLOSED
        channel, self._channel = self._channel, None
        if channel is not None:
            channel.close()


class SessionRef:
    """Non-owning handle to a session, checked for liveness on every use."""

    def __init__(self, session: Session) -> None:
        self._ref = weakref.ref(session)

    def get(self) -> Session:
        session = self._ref()
        if session is None or session.closed:
            raise ClosedConnection("connection was closed")
        return session

    @property
    def alive(self) -> bool:
        session = self._ref()
        return session is not None and not session.closed


__all__ = ["POLL_INTERVAL", "Session", "SessionRef", "SessionState"]
