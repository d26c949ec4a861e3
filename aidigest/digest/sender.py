"""Deliver the newsletter through the mail-sending service."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Awaitable, Callable

import httpx

from aidigest.digest.renderer import short_date
from aidigest.errors import DeliveryError

logger = logging.getLogger(__name__)

_REQUEST_TIMEOUT = 30.0


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try, and how long to wait between tries."""

    max_attempts: int = 3
    delay: float = 2.0

    def wait_time(self, attempt: int) -> float:
        """Seconds to wait after failed *attempt*; fixed, no jitter."""
        return self.delay


@dataclass
class DeliveryResult:
    attempt: int
    status: str = "success"
    response: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"attempt": self.attempt, "status": self.status, **self.response}


class DeliveryDispatcher:
    """POSTs ``{subject, content}`` to the mail service with bounded retries."""

    def __init__(
        self,
        endpoint: str,
        policy: RetryPolicy | None = None,
        subject_prefix: str = "What's Trending in AI",
        timeout: float = _REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        today: Callable[[], date] = date.today,
    ):
        self.endpoint = endpoint
        self.policy = policy or RetryPolicy()
        self.subject_prefix = subject_prefix
        self._timeout = timeout
        self._transport = transport
        self._sleep = sleep
        self._today = today

    def subject(self) -> str:
        return f"{self.subject_prefix}: {short_date(self._today())}"

    async def dispatch(self, content: str) -> DeliveryResult:
        payload = {"subject": self.subject(), "content": content}
        max_attempts = self.policy.max_attempts
        last_error = ""

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            for attempt in range(1, max_attempts + 1):
                logger.info("Sending newsletter, attempt %d/%d", attempt, max_attempts)
                try:
                    data = await self._send(client, payload)
                except _AttemptFailed as exc:
                    last_error = str(exc)
                    logger.warning("Attempt %d failed: %s", attempt, last_error)
                else:
                    logger.info("Newsletter sent on attempt %d", attempt)
                    return DeliveryResult(attempt=attempt, response=data)

                if attempt < max_attempts:
                    wait = self.policy.wait_time(attempt)
                    logger.info("Waiting %.1f seconds before retry", wait)
                    await self._sleep(wait)

        logger.error("All %d delivery attempts failed", max_attempts)
        raise DeliveryError(max_attempts, last_error)

    async def _send(self, client: httpx.AsyncClient, payload: dict) -> dict[str, Any]:
        try:
            resp = await client.post(self.endpoint, json=payload)
        except httpx.HTTPError as exc:
            raise _AttemptFailed(f"request error: {exc}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise _AttemptFailed(
                f"Mail server returned a malformed response (status {resp.status_code})"
            ) from exc
        if not isinstance(data, dict):
            raise _AttemptFailed(
                f"Mail server returned a malformed response (status {resp.status_code})"
            )

        if not resp.is_success:
            raise _AttemptFailed(
                f"Mail server responded with status {resp.status_code}: "
                f"{data.get('error') or 'Unknown error'}"
            )
        return data


class _AttemptFailed(Exception):
    """One delivery attempt failed; the dispatcher decides whether to retry."""
