import asyncio

import httpx
import pytest

from taskproof.client.capture import ProofImage
from taskproof.client.transport import TaskRef, VerificationClient

ENDPOINT = "https://api.test/api/v1/verify-task-proof"
IMAGE = ProofImage(filename="desk.jpg", content=b"\xff\xd8\xff", content_type="image/jpeg")
SUCCESS_BODY = {
    "success": True,
    "verification": {
        "id": "11111111-2222-3333-4444-555555555555",
        "rating": 8,
        "feedback": "Desk is clear",
        "relevance": "high",
        "completeness": "complete",
        "imagePath": "u-1/t1_1760000000000.jpg",
    },
}


def _client(handler, requests=None):
    def recording(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    return VerificationClient(ENDPOINT, "token-abc", tick_seconds=0.001, transport=httpx.MockTransport(recording))


async def test_successful_verification():
    requests = []
    client = _client(lambda request: httpx.Response(200, json=SUCCESS_BODY), requests)

    result = await client.verify(IMAGE, TaskRef(id="t1", title="Clean desk", description="All of it"))

    assert result is not None
    assert result.rating == 8
    assert result.image_path == "u-1/t1_1760000000000.jpg"
    assert client.progress == 100
    assert client.is_verifying is False

    request = requests[0]
    assert request.headers["Authorization"] == "Bearer token-abc"
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    body = request.content
    assert b'name="taskId"' in body
    assert b'name="taskTitle"' in body
    assert b'name="taskDescription"' in body
    assert b'name="image"; filename="desk.jpg"' in body


async def test_description_is_omitted_when_absent():
    requests = []
    client = _client(lambda request: httpx.Response(200, json=SUCCESS_BODY), requests)
    await client.verify(IMAGE, TaskRef(id="t1", title="Clean desk"))
    assert b'name="taskDescription"' not in requests[0].content


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(400, json={"error": "Missing required fields: image, taskId, taskTitle"}),
        httpx.Response(502, json={"error": "Upload failed"}),
        httpx.Response(200, json={"success": False}),
        httpx.Response(200, json={"success": True, "verification": {"rating": "high"}}),
        httpx.Response(500, text="Internal Server Error"),
        httpx.Response(200, json=["not", "an", "object"]),
    ],
)
async def test_failures_return_none_and_reset_progress(response):
    client = _client(lambda request: response)
    result = await client.verify(IMAGE, TaskRef(id="t1", title="Clean desk"))
    assert result is None
    assert client.progress == 0
    assert client.is_verifying is False


async def test_network_error_returns_none_without_retry():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("unreachable", request=request)

    client = _client(handler)
    assert await client.verify(IMAGE, TaskRef(id="t1", title="Clean desk")) is None
    assert len(calls) == 1


async def test_progress_creeps_but_stays_below_completion():
    release = asyncio.Event()
    seen = []

    async def slow_send(request):
        await release.wait()
        return httpx.Response(200, json=SUCCESS_BODY)

    class _SlowTransport(httpx.AsyncBaseTransport):
        async def handle_async_request(self, request):
            return await slow_send(request)

    client = VerificationClient(ENDPOINT, "token-abc", tick_seconds=0.001, transport=_SlowTransport())
    task = asyncio.create_task(client.verify(IMAGE, TaskRef(id="t1", title="Clean desk")))

    await asyncio.sleep(0.05)
    seen.append(client.progress)
    assert client.is_verifying is True
    # A second submission while one is running is refused.
    assert await client.verify(IMAGE, TaskRef(id="t1", title="Clean desk")) is None

    release.set()
    result = await task

    assert result is not None
    assert 10 <= seen[0] <= 90
    assert client.progress == 100

