"""HTTP helpers shared by scraping contexts."""

import random
import time
from dataclasses import dataclass
from typing import Optional, Tuple

import requests
from loguru import logger

from skillpulse.contexts.scraping.ratelimit import TokenBucket
from skillpulse.contexts.scraping.token import AccessTokenManager
from skillpulse.utils.context import RunContext

# 403 is retried too: hh.ru answers 403 both for throttling and for tokens it
# no longer accepts.
TransientCodeSet = (403, 429)

# Malformed or looping URLs fail the same way on every attempt
PermanentErrorTypes = (
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.TooManyRedirects,
)

LINK_GOOD = "success"
LINK_BAD = "failure"
LINK_UNKNOWN = "transient failure"


class FetchFailed(Exception):
    """Retries exhausted, time budget exceeded, or a non-retryable status."""

    def __init__(self, message: str, url: str = None, status: Optional[int] = None,
                 cause: Optional[BaseException] = None, attempts: int = 0):
        super().__init__(message)
        self.url = url
        self.status = status
        self.cause = cause
        self.attempts = attempts


def is_retryable_status(status: int) -> bool:
    return status in TransientCodeSet or 500 <= status < 600


def classify_http_outcome(
    exception: Optional[requests.RequestException] = None,
    response: Optional[requests.Response] = None,
) -> str:
    if response is not None:
        status = response.status_code
        if 200 <= status < 300:
            return LINK_GOOD
        elif is_retryable_status(status):
            return LINK_UNKNOWN
        else:
            return LINK_BAD
    elif exception is not None and isinstance(exception, PermanentErrorTypes):
        return LINK_BAD

    # Other transport errors (timeouts, resets, DNS) are worth another attempt
    return LINK_UNKNOWN


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    initial_delay: float = 0.25
    max_delay: float = 15.0
    multiplier: float = 2.0
    max_total_time: float = 45.0

    @classmethod
    def from_config(cls, retry_config) -> "RetryPolicy":
        return cls(
            max_attempts=int(retry_config.max_attempts),
            initial_delay=float(retry_config.initial_delay),
            max_delay=float(retry_config.max_delay),
            multiplier=float(retry_config.multiplier),
            max_total_time=float(retry_config.max_total_time),
        )

    def base_delay(self, attempt: int) -> float:
        """Exponential delay after the given (1-based) attempt, capped at max_delay."""
        return min(self.initial_delay * self.multiplier ** (attempt - 1), self.max_delay)

    def backoff(self, attempt: int, rng: random.Random = random) -> float:
        """Equal jitter: half of the base delay is fixed, the other half is random."""
        base = self.base_delay(attempt)
        return base / 2 + rng.uniform(0, base / 2)


class RetryingFetcher:
    """
    Rate-limited, authenticated GET/POST with bounded retries.

    Every attempt waits for the shared token bucket, attaches the current access
    token, and classifies the outcome. Transport errors, 429, 403 and 5xx are
    retried with jittered exponential backoff until max_attempts or
    max_total_time runs out.
    """

    def __init__(
        self,
        tokens: AccessTokenManager,
        limiter: TokenBucket,
        policy: RetryPolicy = None,
        user_agent: str = "skillpulse/0.1",
        session: Optional[requests.Session] = None,
        timeout=(5, 30),
        rng: random.Random = None,
        clock=time.monotonic,
    ):
        self.tokens = tokens
        self.limiter = limiter
        self.policy = policy or RetryPolicy()
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent,
            "Accept": "application/json",
        })
        self.timeout = timeout
        self.rng = rng or random.Random()
        self._clock = clock

    def fetch(self, ctx: RunContext, url: str, method: str = "GET", **kwargs) -> requests.Response:
        """
        Fetch a URL, retrying transient failures.

        Returns:
            requests.Response with a 2xx status

        Raises:
            FetchFailed: Non-retryable status, attempts exhausted, or time budget exceeded
            AuthFailure: The access token could not be obtained (never retried here)
            Cancelled: ctx was cancelled while waiting for the limiter, token or backoff
        """
        response, _ = self._fetch_with_attempts(ctx, url, method, **kwargs)
        return response

    def _fetch_with_attempts(
        self, ctx: RunContext, url: str, method: str = "GET", **kwargs
    ) -> Tuple[requests.Response, int]:
        """Retry loop behind fetch(); also returns how many attempts the response took."""
        policy = self.policy
        started = self._clock()
        last_status = None
        last_error = None
        attempt = 0
        extra_headers = kwargs.pop("headers", None) or {}

        for attempt in range(1, policy.max_attempts + 1):
            self.limiter.acquire(ctx)
            token = self.tokens.get_token(ctx)

            headers = dict(extra_headers)
            headers["Authorization"] = f"Bearer {token}"

            response = None
            try:
                response = self.session.request(
                    method, url, headers=headers, timeout=self.timeout, **kwargs
                )
                classification = classify_http_outcome(response=response)
                last_status = response.status_code
                last_error = None
            except requests.RequestException as e:
                classification = classify_http_outcome(exception=e)
                last_error = e

            if classification == LINK_GOOD:
                return response, attempt

            if classification == LINK_BAD:
                if last_error is not None:
                    raise FetchFailed(
                        f"{method} {url} failed with non-retryable error: {last_error}",
                        url=url, cause=last_error, attempts=attempt,
                    ) from last_error
                raise FetchFailed(
                    f"{method} {url} returned non-retryable status {last_status}",
                    url=url, status=last_status, attempts=attempt,
                )

            if last_status == 403 and response is not None:
                self.tokens.mark_invalid(token)

            reason = last_status if last_error is None else type(last_error).__name__
            if attempt == policy.max_attempts:
                logger.warning(f"{method} {url}: attempt {attempt}/{policy.max_attempts} failed ({reason}), giving up")
                break

            delay = policy.backoff(attempt, self.rng)
            elapsed = self._clock() - started
            if elapsed + delay > policy.max_total_time:
                logger.warning(
                    f"{method} {url}: retry budget of {policy.max_total_time:.1f}s exhausted after "
                    f"{attempt} attempt(s) ({reason})"
                )
                break

            logger.debug(f"{method} {url}: attempt {attempt} failed ({reason}), retrying in {delay:.2f}s")
            ctx.sleep(delay)

        raise FetchFailed(
            f"{method} {url} failed after {attempt} attempt(s)"
            + (f", last status {last_status}" if last_error is None else f": {last_error}"),
            url=url, status=last_status, cause=last_error, attempts=attempt,
        )

    def get_json(self, ctx: RunContext, url: str, params: dict = None):
        response, attempts = self._fetch_with_attempts(ctx, url, params=params)
        try:
            return response.json()
        except ValueError as e:
            raise FetchFailed(f"GET {url} returned invalid JSON", url=url,
                              status=response.status_code, cause=e, attempts=attempts) from e
