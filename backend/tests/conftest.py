import httpx
import pytest

from prep_coach.clients.llm import OpenAIClient, SeaLionClient
from prep_coach.clients.rate_limit import RequestSpacer


@pytest.fixture(autouse=True)
def _no_llm_credentials(monkeypatch):
    for name in ("SEALION_API_KEY", "SEA_LION_API_KEY", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
async def make_sealion_client():
    clients = []

    def _make(handler, **kwargs):
        client = SeaLionClient(
            base_url="https://api.sea-lion.ai/v1",
            api_key="secret",
            model="aisingapore/Llama-SEA-LION-v3.5-8B-R",
            guard_model="aisingapore/Llama-SEA-Guard-Prompt-v1",
            spacer=RequestSpacer(0),
            transport=httpx.MockTransport(handler),
            **kwargs,
        )
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.close()


@pytest.fixture
async def make_openai_client():
    clients = []

    def _make(handler, **kwargs):
        client = OpenAIClient(
            base_url="https://api.openai.com/v1",
            api_key="secret",
            model="gpt-4o-mini",
            transport=httpx.MockTransport(handler),
            **kwargs,
        )
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.close()
