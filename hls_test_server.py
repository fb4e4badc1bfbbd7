"""Local aiohttp origin used by the tests to serve manifests and segments."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from aiohttp import web
from aiohttp.test_utils import TestServer


class FakeOrigin:
    """Serves canned responses keyed by request path and records every hit."""

    def __init__(self) -> None:
        self.routes: Dict[str, Tuple[int, bytes, Dict[str, str]]] = {}
        self.requests: List[str] = []
        self._server: Optional[TestServer] = None

    def add(self, path: str, body: bytes | str = b"", status: int = 200, headers: Optional[Dict[str, str]] = None) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[path] = (status, body, headers or {})

    def redirect(self, path: str, location: str, status: int = 302) -> None:
        self.add(path, status=status, headers={"Location": location})

    def url(self, path: str) -> str:
        if self._server is None:
            raise RuntimeError("Origin not started")
        return str(self._server.make_url(path))

    async def _handle(self, request: web.Request) -> web.Response:
        self.requests.append(request.path)
        route = self.routes.get(request.path)
        if route is None:
            return web.Response(status=404)
        status, body, headers = route
        return web.Response(status=status, body=body, headers=headers)

    async def __aenter__(self) -> "FakeOrigin":
        app = web.Application()
        app.router.add_route("GET", "/{tail:.*}", self._handle)
        self._server = TestServer(app)
        await self._server.start_server()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._server is not None:
            await self._server.close()
