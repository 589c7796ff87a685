import httpx
import pytest

from asset_importer.config import Settings
from asset_importer.core.notify.webhook import WebhookNotifier


def _notifier(handler, retry_count=2):
    cfg = Settings(_env_file=None, webhook_retry_count=retry_count, webhook_timeout=5)
    return WebhookNotifier(cfg, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_delivers_json_payload():
    received = []

    def handler(request):
        received.append(request)
        return httpx.Response(200, json={"ok": True})

    delivered = await _notifier(handler).notify("https://shop.test/hook", {"job_id": "j1"})

    assert delivered is True
    assert len(received) == 1
    assert received[0].method == "POST"
    assert received[0].headers["content-type"] == "application/json"
    assert b'"job_id"' in received[0].content


@pytest.mark.asyncio
async def test_retries_then_succeeds():
    statuses = iter([503, 500, 200])

    def handler(request):
        return httpx.Response(next(statuses))

    assert await _notifier(handler).notify("https://shop.test/hook", {}) is True


@pytest.mark.asyncio
async def test_gives_up_after_retry_budget():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, text="nope")

    delivered = await _notifier(handler, retry_count=1).notify("https://shop.test/hook", {})

    assert delivered is False
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_transport_errors_are_not_raised():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    assert await _notifier(handler, retry_count=0).notify("https://shop.test/hook", {}) is False
