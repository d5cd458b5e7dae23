"""Tests for the AI commentary service."""

from types import SimpleNamespace

import pytest

from tradebook.services.llm import AnalysisService, NO_RESPONSE


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        choices = [] if self.content is None else [
            SimpleNamespace(message=SimpleNamespace(content=self.content))
        ]
        return SimpleNamespace(choices=choices)


def fake_client(content):
    completions = FakeCompletions(content)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


@pytest.mark.asyncio
async def test_returns_model_text_verbatim():
    text = "**TCS** looks range-bound.\n\n```json\n{\"not\": \"parsed\"}\n```"
    client, completions = fake_client(text)
    service = AnalysisService(client=client, model="gemini-2.0-flash")

    assert await service.analyze("TCS") == text

    [request] = completions.requests
    assert request["model"] == "gemini-2.0-flash"
    assert request["messages"] == [{
        "role": "user",
        "content": "Analyze stock TCS. Predict short-term trend and explain briefly."
    }]


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [None, ""])
async def test_empty_response_placeholder(content):
    client, _ = fake_client(content)
    service = AnalysisService(client=client, model="gemini-2.0-flash")
    assert await service.analyze("TCS") == NO_RESPONSE


@pytest.mark.asyncio
async def test_provider_errors_propagate():
    class Failing:
        async def create(self, **kwargs):
            raise ConnectionError("provider down")

    client = SimpleNamespace(chat=SimpleNamespace(completions=Failing()))
    service = AnalysisService(client=client, model="gemini-2.0-flash")

    with pytest.raises(ConnectionError):
        await service.analyze("TCS")
