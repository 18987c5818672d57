"""
Terminate OPTIONS requests with an empty 204.

Sits in front of the CORS middleware. Browser preflights are still answered
by it, so the ``Access-Control-*`` headers are kept, but the status becomes
204 and the body is dropped whether or not the CORS check passed. Any other
OPTIONS request is answered here without reaching the routes.
"""

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send


def is_cors_preflight(scope: Scope) -> bool:
    headers = Headers(scope=scope)
    return "origin" in headers and "access-control-request-method" in headers


class PreflightMiddleware:
    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] != "OPTIONS":
            await self.app(scope, receive, send)
            return

        if not is_cors_preflight(scope):
            await Response(status_code=204)(scope, receive, send)
            return

        async def send_no_content(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(raw=list(message.get("headers", [])))
                for name in ("content-length", "content-type"):
                    if name in headers:
                        del headers[name]
                message = {**message, "status": 204, "headers": headers.raw}
            elif message["type"] == "http.response.body":
                message = {**message, "body": b""}
            await send(message)

        await self.app(scope, receive, send_no_content)
