# tests/conftest.py
from contextlib import asynccontextmanager

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer


@pytest.fixture
def serve():
    """
    Returns an async context manager that runs an aiohttp app on a local port
    for the duration of the block.
    """
    @asynccontextmanager
    async def _serve(app: web.Application):
        server = TestServer(app)
        await server.start_server()
        try:
            yield server
        finally:
            await server.close()

    return _serve


@pytest.fixture
def status_app():
    """Builds an app answering every path in `routes` with (status, body[, headers])."""
    def _build(routes: dict) -> web.Application:
        app = web.Application()

        def make_handler(spec):
            status, body = spec[0], spec[1]
            headers = spec[2] if len(spec) > 2 else None

            async def handler(request):
                return web.Response(status=status, text=body, headers=headers, content_type="text/html")
            return handler

        for path, spec in routes.items():
            app.router.add_get(path, make_handler(spec))
        return app

    return _build
