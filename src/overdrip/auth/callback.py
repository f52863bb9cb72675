"""One-shot loopback HTTP listener for the OAuth redirect callback.

:class:`CallbackListener` binds ``localhost:8080`` and serves a single
endpoint, ``/callback``, from a worker thread. The first request carrying a
``code`` query parameter is handed to the waiting caller through a
single-slot queue; the browser is shown a short success or failure page.

Lifecycle::

    listener = CallbackListener()
    listener.start()                       # binds now; ListenerBindError if busy
    print(authorization_url)
    code = listener.await_authorization_code()   # blocks, then stops the server

Each connection is served on its own thread and dropped after a few silent
seconds, so an idle browser preconnect cannot hold up the redirect. A
handler writes its page before it hands the code over, and
:meth:`~CallbackListener.await_authorization_code` stops and joins the worker
before it returns, so the port is released by then.
"""

from __future__ import annotations

import logging
import queue
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional, Union
from urllib.parse import parse_qs, urlparse

from overdrip.exceptions import (
    AuthorizationDeniedError,
    CallbackChannelClosed,
    CallbackTimeoutError,
    ListenerBindError,
    ListenerTaskFailed,
)

logger = logging.getLogger(__name__)

CALLBACK_HOST = "localhost"
CALLBACK_PORT = 8080
CALLBACK_PATH = "/callback"

SUCCESS_PAGE = "<h1>Authentication successful!</h1><p>You can now close this window.</p>"
FAILURE_PAGE = (
    "<h1>Authentication failed</h1>"
    "<p>The authentication session may have timed out. Please try again.</p>"
)

# How often the worker checks for the shutdown signal between requests.
_POLL_INTERVAL = 0.1
# Seconds a connection may stay silent before it is dropped.
_CONNECTION_TIMEOUT = 5.0


def build_redirect_uri(host: str = CALLBACK_HOST, port: int = CALLBACK_PORT) -> str:
    """Return the redirect URI served by a listener on *host*:*port*."""
    return f"http://{host}:{port}{CALLBACK_PATH}"


class _ListenerStopped:
    """Slot marker: the worker exited without delivering anything."""


class _ListenerCrashed:
    """Slot marker: the worker exited with an exception."""

    def __init__(self, exc: BaseException) -> None:
        self.exc = exc


_STOPPED = _ListenerStopped()

_Delivery = Union[str, AuthorizationDeniedError]
_SlotItem = Union[_Delivery, _ListenerStopped, _ListenerCrashed]


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackServer
    timeout = _CONNECTION_TIMEOUT

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path != CALLBACK_PATH:
            self.send_error(404)
            return

        params = parse_qs(parsed.query)
        listener = self.server.listener

        result: Optional[_Delivery] = None
        if "error" in params:
            result = AuthorizationDeniedError(
                params["error"][0],
                params.get("error_description", [None])[0],
            )
        elif params.get("code", [""])[0]:
            result = params["code"][0]

        accepted = result is not None and listener._claim()
        page = SUCCESS_PAGE if accepted and isinstance(result, str) else FAILURE_PAGE
        try:
            self._send_page(page)
        finally:
            # The page goes out before the caller is woken up.
            if accepted:
                listener._offer(result)

    def _send_page(self, page: str) -> None:
        body = f"<html><body>{page}</body></html>".encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)
        self.wfile.flush()

    def log_request(self, code: Any = "-", size: Any = "-") -> None:
        # The query string carries the authorization code; log the path only.
        logger.debug("%s %s -> %s", self.command, urlparse(self.path).path, code)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("callback listener: " + format, *args)


class _CallbackServer(ThreadingHTTPServer):
    timeout = _POLL_INTERVAL
    # One thread per connection: an idle browser preconnect must not block
    # the redirect request.
    daemon_threads = True
    # SO_REUSEPORT would let a second process bind the same port and race us
    # for the redirect.
    allow_reuse_port = False

    def __init__(self, address: tuple[str, int], listener: CallbackListener) -> None:
        self.listener = listener
        super().__init__(address, _CallbackHandler)

    def handle_error(self, request: Any, client_address: Any) -> None:
        logger.warning(
            "Error while handling callback request from %s", client_address, exc_info=True
        )


class CallbackListener:
    """Local HTTP listener that receives exactly one authorization code.

    Args:
        host: Interface to bind. Defaults to ``localhost``.
        port: TCP port to bind. Defaults to ``8080``; ``0`` picks a free
            port (the bound port is then available as :attr:`port`).
        timeout: Seconds :meth:`await_authorization_code` waits for the
            callback. ``None`` waits indefinitely.
    """

    def __init__(
        self,
        host: str = CALLBACK_HOST,
        port: int = CALLBACK_PORT,
        timeout: Optional[float] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self._slot: queue.Queue[_SlotItem] = queue.Queue(maxsize=1)
        self._delivered = False
        self._deliver_lock = threading.Lock()
        self._shutdown = threading.Event()
        self._server: Optional[_CallbackServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def redirect_uri(self) -> str:
        """The redirect URI this listener answers on."""
        return build_redirect_uri(self.host, self.port)

    def start(self) -> None:
        """Bind the port and start serving in a background thread.

        Raises:
            ListenerBindError: If the address cannot be bound (e.g. the
                port is already in use).
        """
        if self._server is not None:
            raise RuntimeError("Callback listener already started")
        try:
            server = _CallbackServer((self.host, self.port), self)
        except OSError as exc:
            raise ListenerBindError(
                f"Cannot listen for the login callback on {self.host}:{self.port}: {exc}"
            ) from exc

        self._server = server
        self.port = server.server_address[1]
        self._thread = threading.Thread(
            target=self._serve, name="overdrip-callback-listener", daemon=True
        )
        self._thread.start()
        logger.debug("Callback listener running on %s", self.redirect_uri)

    def await_authorization_code(self) -> str:
        """Block until the callback delivers a code, then stop the listener.

        Returns:
            The authorization code from the first valid callback.

        Raises:
            CallbackChannelClosed: The listener stopped (or was never
                started) before a code arrived.
            ListenerTaskFailed: The worker thread raised; the original
                exception is chained as ``__cause__``.
            CallbackTimeoutError: :attr:`timeout` elapsed first.
            AuthorizationDeniedError: The provider redirected back with an
                ``error`` parameter.
        """
        if self._server is None:
            raise CallbackChannelClosed("Callback listener is not running")

        try:
            try:
                item = self._slot.get(timeout=self.timeout)
            except queue.Empty:
                raise CallbackTimeoutError(
                    f"No login callback received within {self.timeout:g} seconds"
                ) from None
        finally:
            self.stop()

        if isinstance(item, _ListenerCrashed):
            raise ListenerTaskFailed(f"Callback listener failed: {item.exc}") from item.exc
        if isinstance(item, _ListenerStopped):
            raise CallbackChannelClosed(
                "Callback listener stopped before an authorization code was received"
            )
        if isinstance(item, AuthorizationDeniedError):
            raise item
        return item

    def stop(self) -> None:
        """Signal the worker to stop, wait for it, and release the port.

        Requests already accepted finish on their own threads.
        Calling this more than once is harmless.
        """
        self._shutdown.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()
        if self._server is not None:
            self._server.server_close()

    def __enter__(self) -> CallbackListener:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    # ------------------------------------------------------------------ #

    def _serve(self) -> None:
        assert self._server is not None
        try:
            while not self._shutdown.is_set():
                self._server.handle_request()
        except Exception as exc:
            logger.debug("Callback listener crashed", exc_info=True)
            self._offer(_ListenerCrashed(exc))
        else:
            self._offer(_STOPPED)
        logger.debug("Callback listener stopped")

    def _claim(self) -> bool:
        """Reserve the slot for one callback; only the first one is accepted."""
        with self._deliver_lock:
            if self._delivered or self._shutdown.is_set():
                logger.warning("Ignoring duplicate login callback")
                return False
            self._delivered = True
            return True

    def _offer(self, item: _SlotItem) -> bool:
        try:
            self._slot.put_nowait(item)
        except queue.Full:
            return False
        return True
