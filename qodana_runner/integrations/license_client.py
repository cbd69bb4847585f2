"""HTTP client for the Qodana license service.

Requests are retried with a fixed pause while the service times out, drops the
connection or answers with a server error. A rejected credential ends the loop
after the first attempt.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

import httpx
import structlog
from structlog.typing import FilteringBoundLogger

from qodana_runner.core import config
from qodana_runner.domain.timing import LicenseTimingPolicy

logger = logging.getLogger(__name__)

_AUTHORIZATION_STATUSES = frozenset({401, 403})
_RETRYABLE_CLIENT_STATUSES = frozenset({429})


# Error classes
class LicenseError(RuntimeError):
    def __init__(
        self,
        message: str,
        code: str = "unknown",
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}


class LicenseRetryExhaustedError(LicenseError):
    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, code="retry_exhausted", details=details)
        self.__cause__ = cause


class LicenseAuthorizationError(LicenseError):
    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, code="unauthorized", details=details)


class LicenseRequestError(LicenseError):
    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, code="request_rejected", details=details)


class RetryDelayStrategy(Protocol):
    """Decide how long to pause before the next attempt."""

    def delay(self, attempt: int) -> float:  # pragma: no cover - interface
        """Seconds to wait after ``attempt`` failed."""


@dataclass(frozen=True)
class FixedDelay:
    seconds: float

    def delay(self, attempt: int) -> float:
        return self.seconds


class _RetryableFailure(Exception):
    """Internal marker for failures that may be retried."""


def extract_license_key(
    payload: bytes,
    *,
    key_field: str = config.LICENSE_KEY_FIELD,
    diagnostics: FilteringBoundLogger | None = None,
) -> str:
    """Return the license key from a JSON payload, or ``""`` when unavailable."""

    events = diagnostics or structlog.get_logger(__name__)
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as exc:
        events.warning("license.payload_malformed", reason=str(exc))
        return ""
    if not isinstance(data, dict):
        events.warning("license.payload_malformed", reason="not a JSON object")
        return ""
    value = data.get(key_field)
    if not isinstance(value, str) or not value:
        events.warning("license.key_missing", field=key_field)
        return ""
    return value


@dataclass
class LicenseClient:
    """Fetch license data from ``endpoint`` within the configured time budget."""

    endpoint: str = config.DEFAULT_LICENSE_ENDPOINT
    policy: LicenseTimingPolicy = field(default_factory=LicenseTimingPolicy.from_env)
    delay_strategy: RetryDelayStrategy | None = None
    transport: httpx.BaseTransport | None = None
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.monotonic
    uri: str = config.LICENSE_URI

    def _strategy(self) -> RetryDelayStrategy:
        if self.delay_strategy is not None:
            return self.delay_strategy
        return FixedDelay(float(self.policy.cooldown_seconds))

    @property
    def url(self) -> str:
        return self.endpoint.rstrip("/") + self.uri

    def request_license_data(self, token: str) -> bytes:
        attempts = self.policy.attempts
        timeout = self.policy.per_attempt_timeout
        strategy = self._strategy()
        last_failure: Exception | None = None
        with httpx.Client(
            transport=self.transport, timeout=timeout, follow_redirects=True
        ) as client:
            for attempt in range(1, attempts + 1):
                try:
                    return self._attempt(client, token, attempt)
                except _RetryableFailure as exc:
                    last_failure = exc
                    logger.warning(
                        "License request failed: %s (attempt %d/%d)",
                        exc,
                        attempt,
                        attempts,
                    )
                if attempt < attempts:
                    pause = strategy.delay(attempt)
                    if pause > 0:
                        logger.info("Retrying license request in %.0fs", pause)
                        self.sleep(pause)
        raise LicenseRetryExhaustedError(
            f"License request failed after {attempts} attempts.",
            details={
                "attempts": attempts,
                "url": self.url,
                "error": str(last_failure) if last_failure else None,
            },
            cause=last_failure,
        )

    def _attempt(self, client: httpx.Client, token: str, attempt: int) -> bytes:
        budget = self.policy.per_attempt_timeout
        deadline = self.clock() + budget
        body = bytearray()
        try:
            with client.stream(
                "GET", self.url, headers={"Authorization": f"Bearer {token}"}
            ) as response:
                self._check_status(response.status_code, attempt)
                # httpx timeouts bound each read, not the whole download.
                for chunk in response.iter_bytes():
                    body.extend(chunk)
                    if self.clock() > deadline:
                        raise _RetryableFailure(
                            f"request timed out: body not received within {budget:.0f}s"
                        )
        except httpx.TimeoutException as exc:
            raise _RetryableFailure(f"request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise _RetryableFailure(f"transport error: {exc}") from exc
        logger.debug("License data received on attempt %d", attempt)
        return bytes(body)

    def _check_status(self, status: int, attempt: int) -> None:
        if status >= 500 or status in _RETRYABLE_CLIENT_STATUSES:
            raise _RetryableFailure(f"server responded with HTTP {status}")
        if status in _AUTHORIZATION_STATUSES:
            raise LicenseAuthorizationError(
                f"License service rejected the token (HTTP {status}).",
                details={"status": status, "attempt": attempt, "url": self.url},
            )
        if not 200 <= status < 300:
            raise LicenseRequestError(
                f"License service responded with HTTP {status}.",
                details={"status": status, "attempt": attempt, "url": self.url},
            )


def request_license_data(
    endpoint: str,
    token: str,
    *,
    policy: LicenseTimingPolicy | None = None,
    **client_kwargs: Any,
) -> bytes:
    """Fetch raw license data for ``token``, retrying transient failures."""

    client = LicenseClient(
        endpoint=endpoint,
        policy=policy or LicenseTimingPolicy.from_env(),
        **client_kwargs,
    )
    return client.request_license_data(token)
