"""
XML-RPC client.

Sends method calls to a remote XML-RPC server over HTTP, either blocking
(``send``) or on the running event loop (``send_async``) with a timeout and
cooperative cancellation. A client allows one asynchronous call at a time.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import timedelta
from typing import Any

import httpx

from argot_core import get_logger
from argot_core.config import XmlRpcClientSettings, xmlrpc_client_settings

from . import __version__
from .message import XmlRpcMessage
from .response import XmlRpcResponse

logger = get_logger(__name__)

DEFAULT_TIMEOUT = timedelta(seconds=15)
MAX_TIMEOUT = timedelta(days=365)
DEFAULT_USER_AGENT = f"Argot-XmlRpc/{__version__}"

Credentials = tuple[str, str] | httpx.Auth
SendCompletedCallback = Callable[["XmlRpcMessageSentEvent"], Any]


class WebRequestOptions:
    """Credentials and proxy applied to every outgoing request."""

    def __init__(self, credentials: Credentials | None = None, proxy: str | httpx.Proxy | None = None):
        self.credentials = credentials
        self.proxy = proxy

    def copy(self) -> WebRequestOptions:
        return WebRequestOptions(self.credentials, self.proxy)

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for an httpx client."""
        kwargs: dict[str, Any] = {}
        if self.credentials is not None:
            kwargs["auth"] = self.credentials
        if self.proxy is not None:
            kwargs["proxy"] = self.proxy
        return kwargs


class XmlRpcMessageSentEvent:
    """Completion record of an asynchronous send."""

    def __init__(
        self,
        host: httpx.URL,
        message: XmlRpcMessage,
        response: XmlRpcResponse,
        options: WebRequestOptions | None = None,
        state: Any = None,
    ):
        """
        Initialize event.

        Args:
            host: Server the message was sent to.
            message: The message that was sent.
            response: The server's response.
            options: Credentials and proxy used for the request.
            state: Caller-supplied correlation token.
        """
        if host is None or message is None or response is None:
            raise ValueError("host, message and response are required")
        self.host = host
        self.message = message
        self.response = response
        self._options = options or WebRequestOptions()
        self.state = state

    @property
    def credentials(self) -> Credentials | None:
        return self._options.credentials

    @property
    def proxy(self) -> str | httpx.Proxy | None:
        return self._options.proxy

    def __repr__(self) -> str:
        return (
            f"XmlRpcMessageSentEvent(host={str(self.host)!r}, "
            f"method={self.message.method_name!r}, response={self.response!r}, "
            f"state={self.state!r})"
        )


class _AsyncSendContext:
    """State of one in-flight asynchronous send, shared with its callbacks."""

    def __init__(
        self,
        host: httpx.URL,
        message: XmlRpcMessage,
        options: WebRequestOptions,
        timeout: timedelta,
        state: Any,
    ) -> None:
        self.host = host
        self.message = message
        self.options = options
        self.timeout = timeout
        self.state = state
        self.cancelled = False
        self.task: asyncio.Task[XmlRpcMessageSentEvent | None] | None = None
        self._finished = False

    def finish(self) -> bool:
        """Mark the send finished; only the first call returns True."""
        if self._finished:
            return False
        self._finished = True
        return True


class XmlRpcClient:
    """
    XML-RPC client.

    Defaults come from ``XmlRpcClientSettings`` (``XMLRPC_*`` environment
    variables) and can be overridden through properties.
    """

    def __init__(
        self,
        host: str | httpx.URL | None = None,
        user_agent: str | None = None,
        *,
        settings: XmlRpcClientSettings | None = None,
        transport: httpx.BaseTransport | httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize client.

        Args:
            host: Server endpoint URL.
            user_agent: User-Agent header value.
            settings: Defaults to apply; the global settings when omitted.
            transport: Optional httpx transport (e.g. ``httpx.MockTransport``).
                An explicit transport takes over routing, so no proxy is mounted.
        """
        self._host: httpx.URL | None = None
        self._user_agent = DEFAULT_USER_AGENT
        self._options = WebRequestOptions()
        self._timeout = DEFAULT_TIMEOUT
        self._use_default_credentials = False
        self.allow_content_type_parameters = False
        self._pending: _AsyncSendContext | None = None
        self._send_completed_callbacks: list[SendCompletedCallback] = []
        self._transport = transport

        self._apply_settings(settings if settings is not None else xmlrpc_client_settings)

        if host is not None:
            self.host = host
        if user_agent is not None:
            self.user_agent = user_agent

    @property
    def host(self) -> httpx.URL | None:
        return self._host

    @host.setter
    def host(self, value: str | httpx.URL) -> None:
        if value is None:
            raise ValueError("host must not be None")
        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as e:
            raise ValueError(f"Invalid host URL: {value}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f"host must be an absolute http(s) URL, got {str(value)!r}")
        self._host = url

    @property
    def user_agent(self) -> str:
        return self._user_agent

    @user_agent.setter
    def user_agent(self, value: str) -> None:
        if not value or not value.strip():
            raise ValueError("user_agent must be a non-empty string")
        self._user_agent = value.strip()

    @property
    def credentials(self) -> Credentials | None:
        return self._options.credentials

    @credentials.setter
    def credentials(self, value: Credentials | None) -> None:
        self._options.credentials = value

    @property
    def proxy(self) -> str | httpx.Proxy | None:
        return self._options.proxy

    @proxy.setter
    def proxy(self, value: str | httpx.Proxy | None) -> None:
        self._options.proxy = value

    @property
    def timeout(self) -> timedelta:
        """Time allowed for an asynchronous send (also the blocking send's HTTP timeout)."""
        return self._timeout

    @timeout.setter
    def timeout(self, value: timedelta) -> None:
        if value < timedelta(0):
            raise ValueError("timeout must not be negative")
        if value > MAX_TIMEOUT:
            raise ValueError("timeout must not exceed 365 days")
        self._timeout = value

    @property
    def use_default_credentials(self) -> bool:
        """Let the transport pick up environment credentials and proxies (.netrc, *_PROXY)."""
        return self._use_default_credentials

    @use_default_credentials.setter
    def use_default_credentials(self, value: bool) -> None:
        self._use_default_credentials = bool(value)

    @property
    def send_in_progress(self) -> bool:
        return self._pending is not None

    def add_send_completed_callback(self, callback: SendCompletedCallback) -> None:
        """Register a handler called with the event of each completed asynchronous send."""
        if callback is None:
            raise ValueError("callback must not be None")
        self._send_completed_callbacks.append(callback)

    def remove_send_completed_callback(self, callback: SendCompletedCallback) -> None:
        self._send_completed_callbacks.remove(callback)

    def send(self, message: XmlRpcMessage) -> XmlRpcResponse:
        """
        Send a message and block for the response.

        Args:
            message: Method call to send.

        Returns:
            Parsed server response.

        Raises:
            ValueError: If message is None or the HTTP response is not valid XML-RPC.
            RuntimeError: If no host is configured or an asynchronous send is in progress.
            httpx.HTTPError: On transport failures and non-success HTTP statuses.
        """
        host = self._ensure_can_send(message)

        logger.debug(
            "Sending XML-RPC message",
            extra={"host": str(host), "method_name": message.method_name},
        )
        with httpx.Client(**self._client_kwargs(timeout=self._timeout.total_seconds())) as client:
            http_response = client.post(host, content=message.to_bytes(), headers=self._headers(message))
            http_response.raise_for_status()
            response = XmlRpcResponse.from_http_response(
                http_response, allow_content_type_parameters=self.allow_content_type_parameters
            )

        logger.info(
            "XML-RPC message sent",
            extra={"host": str(host), "method_name": message.method_name, "fault": response.is_fault},
        )
        return response

    def send_async(
        self, message: XmlRpcMessage, state: Any = None
    ) -> asyncio.Task[XmlRpcMessageSentEvent | None]:
        """
        Start sending a message on the running event loop.

        The returned task resolves to the completion event. When the timeout
        elapses first, the request is aborted and the task resolves to None
        without notifying send-completed callbacks. A cancelled send raises
        ``asyncio.CancelledError`` when awaited.

        Args:
            message: Method call to send.
            state: Correlation token carried into the completion event.

        Returns:
            Task for the in-flight send.

        Raises:
            ValueError: If message is None.
            RuntimeError: If no host is configured, an asynchronous send is
                already in progress, or there is no running event loop.
        """
        host = self._ensure_can_send(message)
        loop = asyncio.get_running_loop()

        context = _AsyncSendContext(host, message, self._options.copy(), self._timeout, state)
        self._pending = context
        context.task = loop.create_task(self._run_async_send(context))
        context.task.add_done_callback(lambda _: self._finish(context))
        return context.task

    def send_async_cancel(self) -> None:
        """Cancel the in-flight asynchronous send, if any."""
        context = self._pending
        if context is None or context.cancelled:
            return

        context.cancelled = True
        if context.task is not None:
            context.task.cancel()
        self._finish(context)
        logger.info(
            "XML-RPC asynchronous send cancelled",
            extra={"host": str(context.host), "method_name": context.message.method_name},
        )

    async def _run_async_send(self, context: _AsyncSendContext) -> XmlRpcMessageSentEvent | None:
        extra = {"host": str(context.host), "method_name": context.message.method_name}
        logger.debug("Sending XML-RPC message asynchronously", extra=extra)

        # The client-level timeout governs the whole exchange.
        async with httpx.AsyncClient(**self._client_kwargs(timeout=None, options=context.options)) as client:
            try:
                http_response = await asyncio.wait_for(
                    client.post(
                        context.host,
                        content=context.message.to_bytes(),
                        headers=self._headers(context.message),
                    ),
                    timeout=context.timeout.total_seconds(),
                )
            except TimeoutError:
                logger.warning(
                    "XML-RPC asynchronous send timed out",
                    extra={**extra, "timeout_seconds": context.timeout.total_seconds()},
                )
                self._finish(context)
                return None

            http_response.raise_for_status()
            response = XmlRpcResponse.from_http_response(
                http_response, allow_content_type_parameters=self.allow_content_type_parameters
            )

        event = XmlRpcMessageSentEvent(
            context.host, context.message, response, context.options, context.state
        )
        self._finish(context)
        logger.info("XML-RPC message sent", extra={**extra, "fault": response.is_fault})
        self._on_message_sent(event)
        return event

    def _on_message_sent(self, event: XmlRpcMessageSentEvent) -> None:
        for callback in list(self._send_completed_callbacks):
            try:
                callback(event)
            except Exception:
                logger.exception("XML-RPC send-completed callback failed")

    def _finish(self, context: _AsyncSendContext) -> None:
        if context.finish() and self._pending is context:
            self._pending = None

    def _ensure_can_send(self, message: XmlRpcMessage) -> httpx.URL:
        if message is None:
            raise ValueError("message must not be None")
        if self._host is None:
            raise RuntimeError(
                "Unable to send XML-RPC message. The host has not been initialized. "
                f"Message payload: {message}"
            )
        if self._pending is not None:
            raise RuntimeError(
                "Unable to send XML-RPC message. The client has an asynchronous send in progress. "
                f"Message payload: {message}"
            )
        return self._host

    def _headers(self, message: XmlRpcMessage) -> dict[str, str]:
        return {
            "Content-Type": f"text/xml; charset={message.encoding}",
            "User-Agent": self._user_agent,
        }

    def _client_kwargs(
        self, timeout: float | None, options: WebRequestOptions | None = None
    ) -> dict[str, Any]:
        kwargs = (options or self._options).client_kwargs()
        kwargs["timeout"] = timeout
        kwargs["trust_env"] = self._use_default_credentials
        if self._transport is not None:
            kwargs["transport"] = self._transport
            kwargs.pop("proxy", None)
        return kwargs

    def _apply_settings(self, settings: XmlRpcClientSettings) -> None:
        timeout = timedelta(seconds=settings.timeout_seconds)
        if timedelta(0) < timeout < MAX_TIMEOUT:
            self.timeout = timeout
        if settings.user_agent:
            self.user_agent = settings.user_agent
        self.use_default_credentials = settings.use_default_credentials
        self.allow_content_type_parameters = settings.allow_content_type_parameters
        if settings.credentials is not None:
            self.credentials = settings.credentials
        if settings.proxy:
            self.proxy = settings.proxy
        if settings.host:
            self.host = settings.host
