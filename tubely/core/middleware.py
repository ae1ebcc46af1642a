import time
import logging
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send
from starlette.responses import JSONResponse
from tubely.core.errors import PayloadTooLargeError
from tubely.core.logging import request_id_ctx

logger = logging.getLogger("tubely.requests")

class RequestContextMiddleware:
    """Stamps the request id on log records and logs one timing line per request.

    Plain ASGI rather than ``@app.middleware("http")``: errors raised while the
    route reads the body must reach the app's exception handlers unwrapped.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        token = request_id_ctx.set(Headers(scope=scope).get("x-request-id", "-"))
        start_time = time.time()
        status_code = 500

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            process_time = (time.time() - start_time) * 1000
            logger.info(
                f"Request: {scope['method']} {scope['path']} - Response: {status_code} - Time: {process_time:.2f}ms"
            )
            request_id_ctx.reset(token)

class BodySizeLimitMiddleware:
    """Caps request bodies at ``max_bytes``.

    A declared Content-Length over the cap is refused before the app runs.
    Otherwise bytes are counted as they are received and reading past the
    cap raises PayloadTooLargeError inside whatever is consuming the body.
    """

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        for name, value in scope.get("headers", []):
            if name == b"content-length":
                try:
                    declared = int(value)
                except ValueError:
                    declared = 0
                if declared > self.max_bytes:
                    response = JSONResponse(status_code=413, content={"error": PayloadTooLargeError.public_message})
                    await response(scope, receive, send)
                    return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise PayloadTooLargeError(f"request body exceeded {self.max_bytes} bytes")
            return message

        await self.app(scope, limited_receive, send)
