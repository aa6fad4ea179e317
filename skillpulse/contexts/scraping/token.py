"""
Access token lifecycle for the hh.ru API.

hh.ru issues application tokens through the client-credentials grant and
throttles how often a new one may be requested. The API may also start
rejecting a token (403) before it formally expires. AccessTokenManager keeps
one cached token for all concurrent requests, refreshes it at most once per
min_refresh_interval, and lets callers invalidate it when the API rejects it.
"""

import threading
import time
from dataclasses import dataclass
from typing import Optional

import requests
from loguru import logger

from skillpulse.utils.context import RunContext

# How often a caller blocked behind an in-flight refresh re-checks for cancellation
LOCK_POLL_INTERVAL = 0.1


class AuthFailure(Exception):
    """Token acquisition failed or the token endpoint returned no token."""


@dataclass
class AccessToken:
    value: str
    acquired_at: Optional[float]
    invalid: bool = False


class AccessTokenManager:
    """
    Single-flight owner of the upstream access token.

    get_token() returns the cached token while it is valid. Otherwise exactly one
    caller performs the refresh (after waiting out the cool-down since the last
    attempt) while the others wait on the refresh lock and then pick up the new
    token.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        user_agent: str,
        token_url: str = "https://api.hh.ru/token",
        min_refresh_interval: float = 300.0,
        session: Optional[requests.Session] = None,
        timeout=(5, 30),
        access_token: Optional[str] = None,
        clock=time.monotonic,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.user_agent = user_agent
        self.token_url = token_url
        self.min_refresh_interval = min_refresh_interval
        self.session = session or requests.Session()
        self.timeout = timeout
        self._clock = clock

        # A pre-provisioned token is used until the API rejects it
        self._token = AccessToken(access_token, acquired_at=None) if access_token else None
        self._last_attempt: Optional[float] = None

        self._state_lock = threading.Lock()
        self._refresh_lock = threading.Lock()

    def _cached(self) -> Optional[str]:
        with self._state_lock:
            if self._token is not None and not self._token.invalid:
                return self._token.value
        return None

    def get_token(self, ctx: RunContext) -> str:
        """
        Return a usable access token, refreshing it if necessary.

        Raises:
            AuthFailure: If the token endpoint fails or returns no token
            Cancelled: If ctx is cancelled while waiting for the cool-down or for
                       another caller's refresh
        """
        token = self._cached()
        if token:
            return token

        self._acquire_refresh_lock(ctx)
        try:
            # Another caller may have refreshed while we were waiting
            token = self._cached()
            if token:
                return token
            self._wait_cooldown(ctx)
            return self._refresh()
        finally:
            self._refresh_lock.release()

    def mark_invalid(self, token: Optional[str] = None) -> None:
        """
        Force the next get_token() to refresh.

        Args:
            token: The token value that was rejected. If the cached token has
                   already been replaced, the call is ignored.
        """
        with self._state_lock:
            if self._token is None:
                return
            if token is not None and token != self._token.value:
                return
            if not self._token.invalid:
                logger.warning("Access token marked invalid, next request will refresh it")
            self._token.invalid = True

    def _acquire_refresh_lock(self, ctx: RunContext) -> None:
        while not self._refresh_lock.acquire(timeout=LOCK_POLL_INTERVAL):
            ctx.raise_if_cancelled()
        try:
            ctx.raise_if_cancelled()
        except Exception:
            self._refresh_lock.release()
            raise

    def _wait_cooldown(self, ctx: RunContext) -> None:
        with self._state_lock:
            last_attempt = self._last_attempt
        if last_attempt is None:
            return

        wait = self.min_refresh_interval - (self._clock() - last_attempt)
        if wait > 0:
            logger.info(f"Waiting {wait:.1f}s before requesting a new access token")
            ctx.sleep(wait)

    def _invalidate(self) -> None:
        with self._state_lock:
            if self._token is not None:
                self._token.invalid = True

    def _refresh(self) -> str:
        with self._state_lock:
            self._last_attempt = self._clock()

        try:
            response = self.session.post(
                self.token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
                headers={"User-Agent": self.user_agent, "Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self._invalidate()
            raise AuthFailure(f"token request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            self._invalidate()
            raise AuthFailure(f"token endpoint returned status {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            payload = None
        value = payload.get("access_token") if isinstance(payload, dict) else None
        if not value:
            raise AuthFailure("token endpoint returned an empty access_token")

        with self._state_lock:
            self._token = AccessToken(value, acquired_at=self._clock())

        logger.info("Acquired new access token")
        return value
