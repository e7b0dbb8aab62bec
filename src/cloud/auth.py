"""
Bearer token acquisition for the detection service.

The token is fetched once when the session starts and re-fetched lazily
whenever the detection client finds it missing. There is no timer-based
refresh; a token is assumed to outlive the session unless the service
rejects it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Callable, List, Optional, Set

import aiohttp

from models.config import ServiceConfig
from models.errors import AuthError
from .utils import request_kwargs


class CredentialState(str, Enum):
    ABSENT = "absent"
    PENDING = "pending"
    HELD = "held"


class AuthSession:
    """
    Holds the bearer credential used on every detection call.

    Concurrent acquire() calls share a single in-flight token request.

    Example:
        auth = AuthSession(http, ServiceConfig(base_url="http://localhost:8000"))
        token = await auth.acquire()
    """

    def __init__(self, http: Any, service: ServiceConfig):
        self._http = http
        self._token_url = service.token_url
        self._timeout_s = service.request_timeout_s
        self._token: Optional[str] = None
        self._pending: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()
        self._ready_listeners: List[Callable[[], None]] = []
        self._error_listeners: List[Callable[[AuthError], None]] = []

    @property
    def state(self) -> CredentialState:
        if self._pending is not None and not self._pending.done():
            return CredentialState.PENDING
        if self._token is not None:
            return CredentialState.HELD
        return CredentialState.ABSENT

    def current(self) -> Optional[str]:
        return self._token

    def invalidate(self) -> None:
        """Drop the held credential so the next detection re-acquires it."""
        if self._token is not None:
            logging.info("Auth token invalidated")
        self._token = None

    def add_ready_listener(self, callback: Callable[[], None]) -> None:
        self._ready_listeners.append(callback)

    def add_error_listener(self, callback: Callable[[AuthError], None]) -> None:
        self._error_listeners.append(callback)

    async def acquire(self, force: bool = False) -> str:
        """
        Request a credential from the token endpoint.

        Args:
            force: Fetch even when a credential is already held.

        Returns:
            The bearer token.

        Raises:
            AuthError: If the endpoint fails or its response has no token.
        """
        if self._token is not None and not force and self._pending is None:
            return self._token

        if self._pending is None or self._pending.done():
            self._pending = asyncio.ensure_future(self._fetch())
            self._pending.add_done_callback(self._clear_pending)

        # Shield so a cancelled caller does not cancel the shared request.
        return await asyncio.shield(self._pending)

    def request_acquire(self) -> asyncio.Task:
        """
        Fire-and-forget re-acquisition.

        Failures are logged and reported to error listeners, never raised.
        """
        task = asyncio.ensure_future(self.acquire(force=True))
        self._background.add(task)
        task.add_done_callback(self._finish_background)
        return task

    def cancel(self) -> None:
        """Abandon any token request still running (session teardown)."""
        for task in list(self._background):
            task.cancel()
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()

    def _clear_pending(self, task: asyncio.Task) -> None:
        if self._pending is task:
            self._pending = None
        # Failures were already logged and reported by _fail.
        if not task.cancelled():
            task.exception()

    def _finish_background(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logging.warning(f"Background token re-acquisition failed: {exc}")

    async def _fetch(self) -> str:
        logging.info(f"Requesting auth token from {self._token_url}")
        try:
            async with self._http.get(self._token_url, **request_kwargs(self._timeout_s)) as resp:
                status = resp.status
                body = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise self._fail(AuthError(f"Network error fetching auth token: {e}")) from e

        if not 200 <= status < 300:
            logging.error(f"Token endpoint returned status {status}: {body}")
            raise self._fail(AuthError(f"Token endpoint returned status {status}"))

        try:
            data = json.loads(body)
        except ValueError as e:
            raise self._fail(AuthError("Token endpoint returned malformed JSON")) from e

        token = data.get("token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise self._fail(AuthError("Token not found in token endpoint response"))

        self._token = token
        logging.info("Auth token acquired")
        for callback in list(self._ready_listeners):
            try:
                callback()
            except Exception as e:
                logging.warning(f"Auth ready listener error: {e}")
        return token

    def _fail(self, error: AuthError) -> AuthError:
        self._token = None
        logging.error(f"Authentication failed: {error}")
        for callback in list(self._error_listeners):
            try:
                callback(error)
            except Exception as e:
                logging.warning(f"Auth error listener error: {e}")
        return error
