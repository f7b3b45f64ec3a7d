from __future__ import annotations

import pytest
from aiohttp import test_utils, web

from chat_widget.client import ChatClient, TransportError, build_payload


async def _serve(handler):
    app = web.Application()
    app.router.add_post("/api/chat", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    return server


def test_build_payload():
    assert build_payload("hi", "s-1") == {"message": "hi", "user": {"sessionId": "s-1"}}


@pytest.mark.asyncio
async def test_send_posts_payload_and_returns_json():
    seen = {}

    async def handler(request):
        seen["body"] = await request.json()
        seen["content_type"] = request.headers.get("Content-Type")
        return web.json_response([{"content": "Hello"}])

    server = await _serve(handler)
    try:
        data = await ChatClient(str(server.make_url("/api/chat"))).send("hi", "s-1")
    finally:
        await server.close()

    assert data == [{"content": "Hello"}]
    assert seen["body"] == {"message": "hi", "user": {"sessionId": "s-1"}}
    assert seen["content_type"].startswith("application/json")


@pytest.mark.asyncio
async def test_error_status_raises_transport_error():
    async def handler(request):
        return web.json_response({"error": "An error occurred in the proxy server."}, status=500)

    server = await _serve(handler)
    try:
        with pytest.raises(TransportError) as exc:
            await ChatClient(str(server.make_url("/api/chat"))).send("hi", "s-1")
    finally:
        await server.close()
    assert exc.value.status == 500


@pytest.mark.asyncio
async def test_non_json_body_raises_transport_error():
    async def handler(request):
        return web.Response(text="<html>gateway</html>", content_type="text/html")

    server = await _serve(handler)
    try:
        with pytest.raises(TransportError):
            await ChatClient(str(server.make_url("/api/chat"))).send("hi", "s-1")
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_unreachable_host_raises_transport_error():
    async def handler(request):
        return web.Response()

    server = await _serve(handler)
    url = str(server.make_url("/api/chat"))
    await server.close()
    with pytest.raises(TransportError):
        await ChatClient(url).send("hi", "s-1")
