"""
Request body size limit.

Declared bodies are checked against Content-Length before anything is read.
Bodies sent without a length (Transfer-Encoding: chunked) are counted as they
arrive and rejected as soon as they pass the limit, so no handler ever sees
an oversized request.
"""

import logging
from typing import List

from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)


def error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


class BodySizeLimitMiddleware:
    """Reject request bodies larger than max_body_bytes with 413."""

    def __init__(self, app: ASGIApp, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        header = None
        for name, value in scope.get("headers", []):
            if name == b"content-length":
                header = value.decode("latin-1")
                break

        if header is not None:
            try:
                content_length = int(header)
            except ValueError:
                response = error_response(
                    400, "Invalid Content-Length", "Content-Length must be an integer"
                )
                await response(scope, receive, send)
                return
            if content_length > self.max_body_bytes:
                await self._reject(scope, receive, send, content_length)
                return
            await self.app(scope, receive, send)
            return

        # No declared length: buffer and count until the body ends
        messages: List[Message] = []
        received = 0
        while True:
            message = await receive()
            messages.append(message)
            if message["type"] != "http.request":
                break
            received += len(message.get("body", b""))
            if received > self.max_body_bytes:
                await self._reject(scope, receive, send, received)
                return
            if not message.get("more_body", False):
                break

        async def replay() -> Message:
            if messages:
                return messages.pop(0)
            return await receive()

        await self.app(scope, replay, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size: int) -> None:
        logger.warning(f"Rejected body of at least {size} bytes for {scope.get('path')}")
        response = error_response(
            413,
            "Payload too large",
            f"Request body exceeds {self.max_body_bytes} bytes",
        )
        await response(scope, receive, send)
