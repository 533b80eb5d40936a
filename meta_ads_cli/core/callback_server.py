"""One-shot local callback server for the Meta OAuth authorization-code flow."""

from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional
from urllib.parse import parse_qs, urlparse
import threading

from .exceptions import AuthFlowError
from .utils import logger

CALLBACK_HOST = "127.0.0.1"
CALLBACK_PATH = "/callback"
# Idle connections (browser preconnects) are dropped after this many seconds
REQUEST_TIMEOUT = 5

SUCCESS_HTML = """<!DOCTYPE html>
<html>
<head><title>Authentication Successful</title></head>
<body style="font-family:sans-serif;text-align:center;padding:40px">
<h2>&#10003; Authentication successful!</h2>
<p>You may close this tab and return to the terminal.</p>
</body>
</html>
"""


class CallbackResult:
    """Outcome of the OAuth redirect: either an authorization code or an error."""

    def __init__(self, code: str = "", error: str = "", error_description: str = ""):
        self.code = code
        self.error = error
        self.error_description = error_description

    @property
    def ok(self) -> bool:
        return bool(self.code) and not self.error

    def __repr__(self) -> str:
        if self.ok:
            return "CallbackResult(code=***)"
        return f"CallbackResult(error={self.error!r}, error_description={self.error_description!r})"


class _OneShotHTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address, callback_path: str):
        super().__init__(address, CallbackHandler)
        self.callback_path = callback_path
        self.result: "Future[CallbackResult]" = Future()
        self.result_lock = threading.Lock()

    def deliver(self, result: CallbackResult) -> bool:
        """Store the first result; later callbacks are rejected."""
        with self.result_lock:
            if self.result.done():
                return False
            self.result.set_result(result)
            return True


class CallbackHandler(BaseHTTPRequestHandler):
    server: _OneShotHTTPServer
    timeout = REQUEST_TIMEOUT

    def do_GET(self):
        parsed = urlparse(self.path)
        if parsed.path != self.server.callback_path:
            # Browsers also ask for /favicon.ico; that must not consume the slot
            self.send_response(404)
            self.end_headers()
            return

        query = parse_qs(parsed.query)
        error = query.get("error", [""])[0]
        code = query.get("code", [""])[0]

        if error:
            result = CallbackResult(error=error, error_description=query.get("error_description", [""])[0])
        elif not code:
            result = CallbackResult(error="missing_code", error_description="no code returned in callback")
        else:
            result = CallbackResult(code=code)

        if not self.server.deliver(result):
            self._send_text(409, "Authentication already completed. You may close this tab.")
            return

        if result.ok:
            self.send_response(200)
            self.send_header("Content-Type", "text/html; charset=utf-8")
            self.end_headers()
            self.wfile.write(SUCCESS_HTML.encode("utf-8"))
        elif result.error == "missing_code":
            self._send_text(400, "No code received. You may close this tab.")
        else:
            self._send_text(400, "Authentication failed. You may close this tab.")

    def _send_text(self, status: int, message: str) -> None:
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.end_headers()
        self.wfile.write(message.encode("utf-8"))

    def log_message(self, format, *args):
        logger.debug(f"Callback server: {format % args}")


class CallbackServer:
    """Loopback listener that receives exactly one OAuth redirect.

    Use as a context manager: the port is bound on entry and the listener is
    closed on exit, whichever way the wait ended.

        with CallbackServer() as callback:
            open_browser(build_auth_url(app_id, callback.redirect_uri))
            result = callback.wait(timeout=300)
    """

    def __init__(self, host: str = CALLBACK_HOST, port: int = 0, callback_path: str = CALLBACK_PATH):
        self.host = host
        self.requested_port = port
        self.callback_path = callback_path
        self._server: Optional[_OneShotHTTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    @property
    def port(self) -> int:
        if self._server is None:
            raise RuntimeError("callback server is not started")
        return self._server.server_address[1]

    @property
    def redirect_uri(self) -> str:
        return f"http://{self.host}:{self.port}{self.callback_path}"

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> "CallbackServer":
        try:
            self._server = _OneShotHTTPServer((self.host, self.requested_port), self.callback_path)
        except OSError as e:
            raise AuthFlowError(f"failed to bind callback listener: {e}") from e

        self._thread = threading.Thread(
            target=self._server.serve_forever,
            kwargs={"poll_interval": 0.1},
            name="meta-ads-oauth-callback",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Callback server listening on {self.redirect_uri}")
        return self

    def wait(self, timeout: float) -> CallbackResult:
        """Block until the callback arrives or ``timeout`` seconds elapse."""
        if self._server is None:
            raise RuntimeError("callback server is not started")
        try:
            return self._server.result.result(timeout=timeout)
        except FutureTimeoutError:
            minutes = timeout / 60
            window = f"{minutes:g} minutes" if timeout >= 60 else f"{timeout:g} seconds"
            raise AuthFlowError(f"timed out waiting for OAuth callback ({window})") from None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        logger.info("Callback server closed")

    def __enter__(self) -> "CallbackServer":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
