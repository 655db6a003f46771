import asyncio
import threading
from types import SimpleNamespace

import pytest

from framekit.dispatcher import CLIENT_CLOSED_REQUEST, _run_until_disconnect, current_url


class FakeRequest:
    def __init__(self, disconnected: bool) -> None:
        self.disconnected = disconnected
        self.url = SimpleNamespace(path="/frames")

    async def is_disconnected(self) -> bool:
        return self.disconnected


@pytest.mark.unit
@pytest.mark.asyncio
async def test_disconnect_aborts_pipeline():
    abort_event = threading.Event()
    cancelled = asyncio.Event()

    async def pipeline():
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    response = await _run_until_disconnect(FakeRequest(True), pipeline(), abort_event)

    assert response.status_code == CLIENT_CLOSED_REQUEST
    assert abort_event.is_set()
    assert cancelled.is_set()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_connected_client_gets_pipeline_result():
    abort_event = threading.Event()

    async def pipeline():
        await asyncio.sleep(0.15)
        return "rendered"

    assert await _run_until_disconnect(FakeRequest(False), pipeline(), abort_event) == "rendered"
    assert not abort_event.is_set()


@pytest.mark.unit
def test_current_url_is_rerooted_on_configured_origin():
    request = SimpleNamespace(url="http://10.0.0.5:8000/frames?__bi=1%3Ap")

    assert current_url(request, None) == "http://10.0.0.5:8000/frames?__bi=1%3Ap"
    assert current_url(request, "https://frames.example.com") == "https://frames.example.com/frames?__bi=1%3Ap"
