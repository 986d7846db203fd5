"""
Dispatch gateway: the single "send this HTTP request" entry point.

Notifiers build a DispatchRequest and hand it to the DispatchGateway, which
checks the call context and forwards it to an injected WebhookSender. The
sender owns timeouts, retries and backoff; the gateway only guarantees that
one well-formed request is submitted per notify call, and that nothing is
submitted once the context is done.
"""

from __future__ import annotations

import base64
import random
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

import structlog

from alert_dispatch.exceptions import DispatchError

if TYPE_CHECKING:
    from alert_dispatch.config import SenderConfig
    from alert_dispatch.context import NotifyContext

logger = structlog.get_logger(__name__)

# (response_body, status_code) -> None, raising DispatchError to reject.
ResponseValidator = Callable[[bytes, int], None]


@dataclass(frozen=True)
class DispatchRequest:
    """
    Transport-agnostic HTTP request envelope.

    Attributes:
        url: Target URL.
        body: Request body bytes.
        method: HTTP method.
        headers: Request headers.
        user: Basic auth user, if any.
        password: Basic auth password, if any.
        validate_response: Optional check of a successful response.
    """

    url: str
    body: bytes = b""
    method: str = "POST"
    headers: Mapping[str, str] = field(default_factory=dict)
    user: str = ""
    password: str = ""
    validate_response: ResponseValidator | None = field(default=None, compare=False)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def all_headers(self) -> dict[str, str]:
        """Headers including the basic auth header when credentials are set."""
        headers = dict(self.headers)
        if self.user or self.password:
            credentials = f"{self.user}:{self.password}"
            encoded = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
            headers["Authorization"] = f"Basic {encoded}"
        return headers


@runtime_checkable
class WebhookSender(Protocol):
    """Transport collaborator; raises on failure."""

    def send(self, request: DispatchRequest, timeout: float | None = None) -> None: ...


class DispatchGateway:
    """
    Uniform synchronous dispatch entry point shared by all notifiers.

    Args:
        sender: Transport implementation.
    """

    def __init__(self, sender: WebhookSender) -> None:
        self._sender = sender

    def send(self, ctx: NotifyContext, request: DispatchRequest) -> None:
        """
        Submit ``request`` once.

        Raises:
            DispatchError: If the context is done before sending, or the
                sender reports failure. Any other exception from the sender
                is wrapped, since the delivery outcome is then unknown.
        """
        reason = ctx.done_reason()
        if reason is not None:
            logger.info("dispatch_cancelled", url=_loggable_url(request.url), reason=reason)
            raise DispatchError.cancelled(_loggable_url(request.url), reason)

        try:
            self._sender.send(request, timeout=ctx.remaining())
        except DispatchError:
            raise
        except Exception as e:
            raise DispatchError.transport_failed(
                _loggable_url(request.url), str(e), cause=e
            ) from e


def _loggable_url(url: str) -> str:
    """Strip the query string, which some channels use for credentials."""
    return url.split("?", 1)[0]


class UrllibWebhookSender:
    """
    HTTP sender built on urllib with exponential backoff retries.

    Non-2xx responses, transport errors and rejected responses fail the
    attempt; 4xx responses other than 429 are not retried.
    """

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
        user_agent: str = "Grafana",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._max_retries = max(1, max_retries)
        self._retry_delay_seconds = retry_delay_seconds
        self._user_agent = user_agent
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: SenderConfig) -> UrllibWebhookSender:
        return cls(
            timeout_seconds=config.timeout_seconds,
            max_retries=config.max_retries,
            retry_delay_seconds=config.retry_delay_seconds,
            user_agent=config.user_agent,
        )

    def send(self, request: DispatchRequest, timeout: float | None = None) -> None:
        url = _loggable_url(request.url)
        attempts = 0
        last_error: DispatchError | None = None

        while attempts < self._max_retries:
            attempts += 1
            try:
                status, body = self._post(request, timeout)
                if request.validate_response is not None:
                    request.validate_response(body, status)
                logger.debug("webhook_sent", url=url, status_code=status, attempt=attempts)
                return
            except DispatchError as e:
                last_error = e
                logger.warning(
                    "webhook_send_failed",
                    url=url,
                    attempt=attempts,
                    error=e.message,
                )
                if not e.is_retryable:
                    break

            if attempts < self._max_retries:
                delay = self._retry_delay_seconds * (2 ** (attempts - 1))
                self._sleep(delay + random.random() * 0.1 * delay)

        assert last_error is not None
        logger.error("webhook_delivery_exhausted", url=url, attempts=attempts)
        raise last_error

    def _post(self, request: DispatchRequest, timeout: float | None) -> tuple[int, bytes]:
        headers = {"User-Agent": self._user_agent}
        headers.update(request.all_headers())

        http_request = Request(
            request.url,
            data=request.body if request.method not in ("GET", "HEAD") else None,
            headers=headers,
            method=request.method,
        )
        effective_timeout = self._timeout_seconds
        if timeout is not None:
            effective_timeout = min(effective_timeout, timeout)

        url = _loggable_url(request.url)
        try:
            with urlopen(http_request, timeout=effective_timeout) as response:  # noqa: S310
                return response.status, response.read()
        except HTTPError as e:
            body = e.read() or b""
            logger.error("webhook_http_error", url=url, status_code=e.code, reason=str(e.reason))
            raise DispatchError.bad_status(
                url, e.code, body.decode("utf-8", errors="replace")
            ) from e
        except URLError as e:
            logger.error("webhook_connection_error", url=url, reason=str(e.reason))
            raise DispatchError.transport_failed(url, str(e.reason), cause=e) from e
        except TimeoutError as e:
            raise DispatchError.transport_failed(url, "request timed out", cause=e) from e
