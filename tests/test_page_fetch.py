import asyncio

import aiohttp
import pytest
from aiohttp import web

from bouncer.workflows.errors import PageFetchError
from bouncer.workflows.page_fetch import fetch_page


async def _with_server(handler_map, coro_factory):
    app = web.Application()
    for path, handler in handler_map.items():
        app.router.add_get(path, handler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = runner.addresses[0][1]
    try:
        async with aiohttp.ClientSession() as session:
            return await coro_factory(session, f"http://127.0.0.1:{port}")
    finally:
        await runner.cleanup()


def test_fetch_page_returns_body() -> None:
    async def handler(request):
        return web.Response(text="On MUSH as: Alice", content_type="text/html")

    body = asyncio.run(
        _with_server({"/char/Alice": handler}, lambda s, base: fetch_page(s, base + "/char/Alice", timeout=5))
    )
    assert body == "On MUSH as: Alice"


def test_fetch_page_does_not_raise_on_http_error_status() -> None:
    async def handler(request):
        return web.Response(status=404, text="Not found")

    body = asyncio.run(
        _with_server({"/missing": handler}, lambda s, base: fetch_page(s, base + "/missing", timeout=5))
    )
    assert body == "Not found"


def test_fetch_page_timeout_raises() -> None:
    async def handler(request):
        await asyncio.sleep(1)
        return web.Response(text="late")

    with pytest.raises(PageFetchError, match="timed out"):
        asyncio.run(
            _with_server({"/slow": handler}, lambda s, base: fetch_page(s, base + "/slow", timeout=0.05))
        )


def test_fetch_page_connection_refused() -> None:
    async def run():
        async with aiohttp.ClientSession() as session:
            # Port 1 on localhost is never listening in the test environment.
            return await fetch_page(session, "http://127.0.0.1:1/", timeout=5)

    with pytest.raises(PageFetchError) as excinfo:
        asyncio.run(run())
    assert excinfo.value.url == "http://127.0.0.1:1/"
