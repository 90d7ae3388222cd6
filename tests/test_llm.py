import asyncio

import pytest

from expense_chat_parser.core import llm
from expense_chat_parser.core.categorization import default_taxonomy
from expense_chat_parser.core.llm import (
    augment_with_llm,
    augment_with_llm_async,
    build_prompt,
    overlay,
    parse_llm_response,
)
from expense_chat_parser.core.models import ParsedExpense

TAXONOMY = default_taxonomy()
BASE = ParsedExpense(
    date="2024-05-10",
    category="Food",
    purpose="Meal",
    place="Other",
    amount=8.0,
    description="Had kimchi stew for lunch today for €8",
)


def test_parse_llm_response_strips_code_fence() -> None:
    assert parse_llm_response('```json\n{"amount": 3}\n```') == {"amount": 3}
    assert parse_llm_response('  {"amount": 3}  ') == {"amount": 3}


@pytest.mark.parametrize("body", ["not json", "[1, 2]", "", "null"])
def test_parse_llm_response_rejects_non_objects(body: str) -> None:
    with pytest.raises(ValueError):
        parse_llm_response(body)


def test_overlay_takes_valid_fields() -> None:
    result = overlay(
        BASE,
        {"date": "2024-05-09", "category": "food", "place": "Restaurant", "amount": "9.50"},
        TAXONOMY,
    )
    assert result.date == "2024-05-09"
    assert result.category == "Food"
    assert result.place == "Restaurant"
    assert result.amount == 9.5
    assert result.purpose == "Meal"


def test_overlay_ignores_missing_null_and_invalid_fields() -> None:
    result = overlay(
        BASE,
        {
            "date": "yesterday",
            "category": "Groceries",
            "purpose": None,
            "place": 42,
            "amount": 0,
            "description": "something else",
        },
        TAXONOMY,
    )
    assert result == BASE


@pytest.mark.parametrize("amount", [-5, True, "abc", [3], float("nan")])
def test_overlay_rejects_bad_amounts(amount) -> None:
    assert overlay(BASE, {"amount": amount}, TAXONOMY).amount == 8.0


def test_overlay_accepts_other_label() -> None:
    assert overlay(BASE, {"category": "OTHER"}, TAXONOMY).category == "Other"


def test_build_prompt_lists_labels() -> None:
    prompt = build_prompt(BASE.description, BASE, TAXONOMY)
    assert "Food|Transportation|Shopping" in prompt
    assert "|Other" in prompt
    assert "2024-05-10" in prompt
    assert BASE.description in prompt


def test_unsupported_provider_returns_base() -> None:
    assert augment_with_llm(BASE.description, BASE, TAXONOMY, provider="carrier-pigeon") is BASE


def test_malformed_reply_returns_base(monkeypatch) -> None:
    monkeypatch.setattr(llm, "_call_openai", lambda prompt, model, timeout: "Sure! Here you go")
    assert augment_with_llm(BASE.description, BASE, TAXONOMY) is BASE


def test_default_model_is_used(monkeypatch) -> None:
    seen = {}

    def reply(prompt, model, timeout):
        seen["model"] = model
        seen["timeout"] = timeout
        return '{"amount": 8}'

    monkeypatch.setattr(llm, "_call_huggingface", reply)
    augment_with_llm(BASE.description, BASE, TAXONOMY, provider="huggingface", timeout=2.5)
    assert seen == {"model": llm.DEFAULT_MODELS[llm.LLMProvider.HUGGINGFACE], "timeout": 2.5}


def test_verbose_failure_is_reported(monkeypatch, capsys) -> None:
    def fail(prompt, model, timeout):
        raise ConnectionError("network down")

    monkeypatch.setattr(llm, "_call_azure_openai", fail)
    assert augment_with_llm(BASE.description, BASE, TAXONOMY, provider="azure-openai", verbose=True) is BASE
    assert "network down" in capsys.readouterr().out


def test_async_timeout_returns_base(monkeypatch) -> None:
    async def slow(prompt, model, timeout):
        await asyncio.sleep(5)
        return '{"category": "Culture"}'

    monkeypatch.setattr(llm, "_call_openai_async", slow)
    result = asyncio.run(augment_with_llm_async(BASE.description, BASE, TAXONOMY, timeout=0.01))
    assert result is BASE


def test_async_overlay(monkeypatch) -> None:
    async def reply(prompt, model, timeout):
        return '{"purpose": "Meeting"}'

    monkeypatch.setattr(llm, "_call_huggingface_async", reply)
    result = asyncio.run(
        augment_with_llm_async(BASE.description, BASE, TAXONOMY, provider="huggingface")
    )
    assert result.purpose == "Meeting"
    assert result.category == "Food"
