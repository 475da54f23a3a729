"""Retry controller - authentication state, re-auth on 401 and backoff.

The controller owns exactly one :class:`~swiftstore.types.Session` and one
connection handle. It is not thread-safe: run one call at a time per
instance, or give each thread its own controller.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Callable

from .auth import get_auth
from .dispatch import execute
from .exceptions import (
    AuthenticationError,
    ClientException,
    ServerErrorsExhausted,
    SwiftStoreError,
    TransportFault,
    UnsafeRetryError,
)
from .operations import Operation
from .transport import HTTPConnection
from .types import Credentials, ResetCallback, Session


class State(Enum):
    """Where an invocation of :meth:`RetryController.call_with_retry` stands."""

    NEED_AUTH = "need_auth"
    HAVE_SESSION = "have_session"
    SUCCESS = "success"
    FATAL = "fatal"


class RetryController:
    """Execute operations with credential refresh and exponential backoff.

    Parameters
    ----------
    credentials : Credentials
        Auth endpoint and identity.
    retries : int
        Maximum number of dispatch attempts per call (at least 1).
    starting_backoff : float
        Seconds to sleep after the first failed attempt; doubled after
        every further failure.
    snet : bool
        Rewrite the storage host for the private network.
    preauth_url, preauth_token : str | None
        A session obtained elsewhere. Used only when both are given.
    insecure : bool
        Skip TLS verification.
    timeout : float | None
        Socket timeout.
    proxy : str | None
        Proxy URL.
    suppress_server_errors : bool
        Return ``None`` instead of raising :class:`ServerErrorsExhausted`
        when the last attempt ended in a 5xx response.
    sleep : Callable[[float], Any]
        Sleep function, replaceable in tests.
    logger : logging.Logger | None
        Logger to report retries to.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        retries: int = 5,
        starting_backoff: float = 1.0,
        snet: bool = False,
        preauth_url: str | None = None,
        preauth_token: str | None = None,
        insecure: bool = False,
        timeout: float | None = None,
        proxy: str | None = None,
        suppress_server_errors: bool = False,
        sleep: Callable[[float], Any] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        if retries < 1:
            raise ValueError("retries must be at least 1")
        self.credentials = credentials
        self.retries = retries
        self.starting_backoff = starting_backoff
        self.snet = snet
        self.insecure = insecure
        self.timeout = timeout
        self.proxy = proxy
        self.suppress_server_errors = suppress_server_errors
        self._sleep = sleep
        self._logger = logger or logging.getLogger(__name__)
        self._session: Session | None = None
        if preauth_url and preauth_token:
            self._session = Session(preauth_url, preauth_token)
        self._http_conn: HTTPConnection | None = None
        self.attempts = 0
        self.last_state = self.state

    # ------------------------------------------------------------------ #
    #  Session and connection state                                       #
    # ------------------------------------------------------------------ #

    @property
    def session(self) -> Session | None:
        """Current session, or ``None`` when authentication is needed."""
        return self._session

    @property
    def state(self) -> State:
        return State.HAVE_SESSION if self._session is not None else State.NEED_AUTH

    @property
    def url(self) -> str | None:
        return self._session.storage_url if self._session else None

    @property
    def token(self) -> str | None:
        return self._session.auth_token if self._session else None

    def authenticate(self) -> Session:
        """Run the endpoint resolver and replace the session.

        The connection handle is dropped since the storage URL may change.

        Raises
        ------
        AuthenticationError
        TransportFault
        """
        result = get_auth(
            self.credentials.auth_url,
            self.credentials.username,
            self.credentials.key,
            self.snet,
            insecure=self.insecure,
            timeout=self.timeout,
            proxy=self.proxy,
        )
        self.close()
        self._session = Session(result.storage_url, result.auth_token)
        return self._session

    def invalidate(self) -> None:
        """Forget the session so the next attempt re-authenticates."""
        self._session = None
        self.close()

    def http_connection(self) -> HTTPConnection:
        """Return the connection handle, creating it for the current session."""
        if self._session is None:
            raise SwiftStoreError("No session to connect with")
        if self._http_conn is None:
            self._http_conn = HTTPConnection(
                self._session.storage_url,
                insecure=self.insecure,
                timeout=self.timeout,
                proxy=self.proxy,
            )
        return self._http_conn

    def close(self) -> None:
        """Tear down the connection handle; the session is kept."""
        if self._http_conn is not None:
            self._http_conn.close()
            self._http_conn = None

    # ------------------------------------------------------------------ #
    #  Execution                                                          #
    # ------------------------------------------------------------------ #

    def call_with_retry(self, operation: Operation, reset: ResetCallback | None = None) -> Any:
        """Run *operation* until it succeeds, fails fatally or runs out of attempts.

        Parameters
        ----------
        operation : Operation
            The resource operation to perform.
        reset : ResetCallback | None
            Called with *operation* before every retry to rewind an external
            stream. Required when the operation's body is a stream.

        Returns
        -------
        Any
            The operation's parsed result, or ``None`` when server errors
            were exhausted with ``suppress_server_errors`` set.

        Raises
        ------
        AuthenticationError
            If authentication fails, or a 401 repeats after re-authentication.
        ClientException
            On a fatal HTTP status, or the last 408 once attempts run out.
        ServerErrorsExhausted
            If the last attempt ended in a 5xx response.
        TransportFault
            If the last attempt failed at the connection level.
        UnsafeRetryError
            If a streamed body would have to be resent without a reset.
        """
        self.attempts = 0
        backoff = self.starting_backoff
        retried_auth = False
        last_error: SwiftStoreError | None = None

        while self.attempts < self.retries:
            self.attempts += 1
            self.last_state = self.state
            try:
                if self.last_state is State.NEED_AUTH:
                    self._logger.debug("Attempt %d: authenticating as %s", self.attempts, self.credentials.username)
                    self.authenticate()
                    self.last_state = State.HAVE_SESSION
                conn = self.http_connection()
                response = execute(conn, self.token, operation.request())
                result = operation.parse(response)
                self.last_state = State.SUCCESS
                return result
            except AuthenticationError:
                self.last_state = State.FATAL
                raise
            except TransportFault as err:
                last_error = err
                self._logger.debug("Transport fault, dropping connection: %s", err)
                self.close()
            except ClientException as err:
                last_error = err
                status = err.http_status or 0
                if status == 401:
                    self.invalidate()
                    if retried_auth:
                        self.last_state = State.FATAL
                        raise AuthenticationError.wrap("Unauthorized after re-authentication", err) from err
                    retried_auth = True
                    self._logger.debug("Got 401, session cleared")
                elif status == 408:
                    self._logger.debug("Got 408, dropping connection")
                    self.close()
                elif 500 <= status <= 599:
                    pass
                else:
                    self.last_state = State.FATAL
                    raise

            if self.attempts >= self.retries:
                break

            if reset is not None:
                reset(operation)
            elif operation.is_stream:
                raise UnsafeRetryError(
                    f"{type(operation).__name__} failed and its stream cannot be reset for re-upload"
                ) from last_error

            self._logger.warning(
                "Attempt %d/%d failed (%s), retrying in %.2fs",
                self.attempts,
                self.retries,
                last_error,
                backoff,
            )
            self._sleep(backoff)
            backoff *= 2

        return self._exhausted(last_error)

    def _exhausted(self, last_error: SwiftStoreError | None) -> None:
        if isinstance(last_error, ClientException) and 500 <= (last_error.http_status or 0) <= 599:
            if self.suppress_server_errors:
                self._logger.warning("Giving up after %d attempts with server errors: %s", self.attempts, last_error)
                return None
            self._logger.error("Giving up after %d attempts with server errors: %s", self.attempts, last_error)
            raise ServerErrorsExhausted.wrap(
                f"Server errors on all {self.attempts} attempts", last_error
            ) from last_error
        self._logger.error("Giving up after %d attempts: %s", self.attempts, last_error)
        if last_error is None:  # pragma: no cover
            raise SwiftStoreError("Retry loop ended without an outcome")
        raise last_error
