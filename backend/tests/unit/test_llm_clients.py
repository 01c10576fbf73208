import json

import httpx
import pytest

from prep_coach.clients.llm import LLMError
from prep_coach.clients.rate_limit import RequestSpacer


@pytest.mark.asyncio
async def test_sealion_complete_posts_chat_completion(make_sealion_client):
    seen = {}

    async def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["payload"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    client = make_sealion_client(handler)

    content = await client.complete(
        [{"role": "user", "content": "hello"}], max_tokens=50, temperature=0.2
    )

    assert content == "ok"
    assert seen["url"] == "https://api.sea-lion.ai/v1/chat/completions"
    assert seen["auth"] == "Bearer secret"
    assert seen["payload"]["model"] == "aisingapore/Llama-SEA-LION-v3.5-8B-R"
    assert seen["payload"]["messages"] == [{"role": "user", "content": "hello"}]
    assert seen["payload"]["max_tokens"] == 50
    assert seen["payload"]["temperature"] == 0.2
    assert seen["payload"]["top_p"] == 0.9
    assert seen["payload"]["stream"] is False


@pytest.mark.asyncio
async def test_model_override_is_sent(make_sealion_client):
    models = []

    async def handler(request):
        models.append(json.loads(request.content)["model"])
        return httpx.Response(200, json={"choices": [{"message": {"content": "safe"}}]})

    client = make_sealion_client(handler)

    await client.complete([{"role": "user", "content": "x"}], model=client.guard_model)

    assert models == ["aisingapore/Llama-SEA-Guard-Prompt-v1"]


@pytest.mark.asyncio
async def test_missing_message_content_raises(make_sealion_client):
    async def handler(request):
        return httpx.Response(200, json={"choices": [{"message": {}}]})

    client = make_sealion_client(handler)

    with pytest.raises(LLMError) as exc:
        await client.complete([{"role": "user", "content": "x"}])

    assert "Missing message content" in str(exc.value)


@pytest.mark.asyncio
async def test_missing_choices_raises(make_sealion_client):
    async def handler(request):
        return httpx.Response(200, json={"id": "cmpl-1"})

    client = make_sealion_client(handler)

    with pytest.raises(LLMError) as exc:
        await client.complete([{"role": "user", "content": "x"}])

    assert "Missing 'choices'" in str(exc.value)


@pytest.mark.asyncio
async def test_client_error_is_not_retried(make_sealion_client):
    calls = {"count": 0}

    async def handler(request):
        calls["count"] += 1
        return httpx.Response(401, text="unauthorized")

    client = make_sealion_client(handler, retries=2)

    with pytest.raises(LLMError) as exc:
        await client.complete([{"role": "user", "content": "x"}])

    assert exc.value.status_code == 401
    assert exc.value.body == "unauthorized"
    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_network_error_without_retries_raises_once(make_sealion_client):
    calls = {"count": 0}

    async def handler(request):
        calls["count"] += 1
        raise httpx.ConnectError("connection refused", request=request)

    client = make_sealion_client(handler)

    with pytest.raises(LLMError) as exc:
        await client.complete([{"role": "user", "content": "x"}])

    assert str(exc.value) == "sealion request failed"
    assert isinstance(exc.value.__cause__, httpx.ConnectError)
    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_openai_retries_server_errors(make_openai_client):
    calls = {"count": 0}

    async def handler(request):
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(502, text="bad gateway")
        payload = json.loads(request.content)
        assert payload["model"] == "gpt-4o-mini"
        assert "top_p" not in payload
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    client = make_openai_client(handler, retries=1)

    assert await client.complete([{"role": "user", "content": "x"}]) == "ok"
    assert calls["count"] == 2


@pytest.mark.asyncio
async def test_non_json_body_raises(make_openai_client):
    async def handler(request):
        return httpx.Response(200, text="<html>maintenance</html>")

    client = make_openai_client(handler)

    with pytest.raises(LLMError) as exc:
        await client.complete([{"role": "user", "content": "x"}])

    assert "non-JSON" in str(exc.value)


@pytest.mark.asyncio
async def test_request_spacer_enforces_minimum_interval():
    now = {"t": 100.0}
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)
        now["t"] += seconds

    spacer = RequestSpacer(1.0, clock=lambda: now["t"], sleep=fake_sleep)

    await spacer.wait()
    now["t"] += 0.25
    await spacer.wait()
    now["t"] += 2.0
    await spacer.wait()

    assert sleeps == [pytest.approx(0.75)]


@pytest.mark.asyncio
async def test_sealion_waits_on_spacer_before_each_request(make_sealion_client):
    waits = []

    class RecordingSpacer:
        async def wait(self):
            waits.append("wait")

    async def handler(request):
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    client = make_sealion_client(handler)
    client._spacer = RecordingSpacer()

    await client.complete([{"role": "user", "content": "a"}])
    await client.complete([{"role": "user", "content": "b"}])

    assert waits == ["wait", "wait"]


@pytest.mark.asyncio
async def test_server_errors_exhaust_retries(make_openai_client):
    calls = {"count": 0}

    async def handler(request):
        calls["count"] += 1
        return httpx.Response(503, text="overloaded")

    client = make_openai_client(handler, retries=2)

    with pytest.raises(LLMError) as exc:
        await client.complete([{"role": "user", "content": "x"}])

    assert str(exc.value) == "openai request failed"
    assert exc.value.__cause__.status_code == 503
    assert calls["count"] == 3
