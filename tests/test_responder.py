import asyncio
from types import SimpleNamespace

import pytest

from agents import responder
from agents.orchestrator import build_dataset
from utils.errors import UpstreamAIError

ROWS = [
    {"Region": "East", "Sales": 100},
    {"Region": "West", "Sales": 200},
    {"Region": "East", "Sales": 50},
]


def _dataset():
    return build_dataset([dict(r) for r in ROWS], "sales.csv", 64)


class FakeGroq:
    """Stands in for AsyncGroq: chat.completions.create and models.list."""

    def __init__(self, content="", error=None, delay=0.0, models=()):
        self.content = content
        self.error = error
        self.delay = delay
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
        self.models = SimpleNamespace(list=self._list_models)
        self._models = list(models)

    async def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    async def _list_models(self):
        if self.error:
            raise self.error
        return SimpleNamespace(data=self._models)


@pytest.fixture
def ai_on(monkeypatch):
    monkeypatch.setattr(responder, "GROQ_API_KEY", "test-key")

    def install(fake):
        monkeypatch.setattr(responder, "_get_client", lambda: fake)
        return fake

    return install


@pytest.mark.parametrize(
    "query, opening",
    [
        ("Sales by REGION", "Based on the analysis of 42 records"),
        ("what is the margin", "Profit analysis across 42 records"),
        ("profit by region", "Profit analysis across 42 records"),
        ("show the trend", "Time-based analysis of the 42 records"),
        ("sales per product", "Analysis of your 42 records"),
    ],
)
def test_fallback_template_selection(query, opening) -> None:
    assert responder.fallback_answer(query, 42).startswith(opening)


def test_no_api_key_uses_fallback(monkeypatch) -> None:
    monkeypatch.setattr(responder, "GROQ_API_KEY", None)
    answer, ai_generated = asyncio.run(responder.generate_answer(_dataset(), "sales by region"))
    assert ai_generated is False
    assert "3 records" in answer


def test_ai_answer_is_returned(ai_on) -> None:
    fake = ai_on(FakeGroq(content="  West leads with 200.  "))
    answer, ai_generated = asyncio.run(responder.generate_answer(_dataset(), "sales by region"))
    assert (answer, ai_generated) == ("West leads with 200.", True)
    prompt = fake.calls[0]["messages"][1]["content"]
    assert "Columns: Region, Sales" in prompt
    assert "Total Rows: 3" in prompt
    assert 'User Question: "sales by region"' in prompt


def test_upstream_error_degrades_to_fallback(ai_on) -> None:
    ai_on(FakeGroq(error=RuntimeError("503 from provider")))
    answer, ai_generated = asyncio.run(responder.generate_answer(_dataset(), "profit"))
    assert ai_generated is False
    assert answer == responder.fallback_answer("profit", 3)


def test_empty_ai_reply_degrades_to_fallback(ai_on) -> None:
    ai_on(FakeGroq(content="   "))
    _, ai_generated = asyncio.run(responder.generate_answer(_dataset(), "profit"))
    assert ai_generated is False


def test_timeout_degrades_to_fallback(ai_on, monkeypatch) -> None:
    monkeypatch.setattr(responder, "AI_TIMEOUT_SECONDS", 0.05)
    ai_on(FakeGroq(content="too late", delay=1.0))
    answer, ai_generated = asyncio.run(responder.generate_answer(_dataset(), "time series"))
    assert ai_generated is False
    assert answer.startswith("Time-based analysis")


def test_list_models_maps_catalog(ai_on) -> None:
    model = SimpleNamespace(id="llama-3.3-70b-versatile", owned_by="Meta", context_window=131072, active=True)
    ai_on(FakeGroq(models=[model]))
    models = asyncio.run(responder.list_models())
    assert models == [{
        "name": "llama-3.3-70b-versatile",
        "ownedBy": "Meta",
        "contextWindow": 131072,
        "active": True,
    }]


def test_list_models_errors(ai_on, monkeypatch) -> None:
    ai_on(FakeGroq(error=RuntimeError("boom")))
    with pytest.raises(UpstreamAIError):
        asyncio.run(responder.list_models())
    monkeypatch.setattr(responder, "GROQ_API_KEY", None)
    with pytest.raises(UpstreamAIError):
        asyncio.run(responder.list_models())
