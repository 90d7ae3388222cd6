"""
Optional LLM augmentation supporting multiple providers (OpenAI, Anthropic, etc.).

The overlay only ever refines a record the rule-based pipeline already built.
Whatever goes wrong on the way (missing key, network, timeout, junk reply),
the base record comes back unchanged.
"""

import asyncio
import datetime as dt
import json
import os
from enum import Enum
from typing import Dict, Optional

from .categorization import Taxonomy
from .models import ParsedExpense
from .utils import FALLBACK_LABEL, normalize_amount


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    AZURE_OPENAI = "azure-openai"
    HUGGINGFACE = "huggingface"


# Default models for each provider
DEFAULT_MODELS = {
    LLMProvider.ANTHROPIC: "claude-3-5-haiku-20241022",
    LLMProvider.OPENAI: "gpt-4o-mini",
    LLMProvider.AZURE_OPENAI: "gpt-4o-mini",
    LLMProvider.HUGGINGFACE: "meta-llama/Llama-3.1-8B-Instruct",
}

HUGGINGFACE_BASE_URL = "https://router.huggingface.co/v1"

DEFAULT_TIMEOUT_SECS = 10.0

# Lazy clients, keyed by (kind, timeout)
_clients = {}


def _get_anthropic_client(timeout: float, is_async: bool = False):
    """Get or create Anthropic client (lazy initialization)."""
    key = ("anthropic-async" if is_async else "anthropic", timeout)
    if key not in _clients:
        import anthropic
        cls = anthropic.AsyncAnthropic if is_async else anthropic.Anthropic
        _clients[key] = cls(timeout=timeout, max_retries=0)  # Uses ANTHROPIC_API_KEY env var
    return _clients[key]


def _get_openai_client(timeout: float, is_async: bool = False):
    """Get or create OpenAI client (lazy initialization)."""
    key = ("openai-async" if is_async else "openai", timeout)
    if key not in _clients:
        import openai
        cls = openai.AsyncOpenAI if is_async else openai.OpenAI
        _clients[key] = cls(timeout=timeout, max_retries=0)  # Uses OPENAI_API_KEY env var
    return _clients[key]


def _get_azure_openai_client(timeout: float, is_async: bool = False):
    """Get or create Azure OpenAI client (lazy initialization)."""
    key = ("azure-async" if is_async else "azure", timeout)
    if key not in _clients:
        import openai
        cls = openai.AsyncAzureOpenAI if is_async else openai.AzureOpenAI
        _clients[key] = cls(
            api_key=os.getenv("AZURE_OPENAI_API_KEY"),
            api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-02-15-preview"),
            azure_endpoint=os.getenv("AZURE_OPENAI_ENDPOINT"),
            timeout=timeout,
            max_retries=0,
        )
    return _clients[key]


def _get_huggingface_client(timeout: float, is_async: bool = False):
    """Get or create a client for the Hugging Face OpenAI-compatible router."""
    key = ("huggingface-async" if is_async else "huggingface", timeout)
    if key not in _clients:
        import openai
        cls = openai.AsyncOpenAI if is_async else openai.OpenAI
        _clients[key] = cls(
            base_url=os.getenv("HF_BASE_URL", HUGGINGFACE_BASE_URL),
            api_key=os.getenv("HF_TOKEN"),
            timeout=timeout,
            max_retries=0,
        )
    return _clients[key]


def _chat_kwargs(prompt: str, model: str) -> Dict:
    return {
        "model": model,
        "messages": [{"role": "user", "content": prompt}],
        "max_tokens": 300,
        "temperature": 0.0,
    }


def _call_anthropic(prompt: str, model: str, timeout: float) -> str:
    """Call Anthropic API."""
    client = _get_anthropic_client(timeout)
    response = client.messages.create(**_chat_kwargs(prompt, model))
    return response.content[0].text.strip()


def _call_openai(prompt: str, model: str, timeout: float) -> str:
    """Call OpenAI API."""
    client = _get_openai_client(timeout)
    response = client.chat.completions.create(
        response_format={"type": "json_object"}, **_chat_kwargs(prompt, model)
    )
    return response.choices[0].message.content.strip()


def _call_azure_openai(prompt: str, model: str, timeout: float) -> str:
    """Call Azure OpenAI API."""
    client = _get_azure_openai_client(timeout)
    response = client.chat.completions.create(
        response_format={"type": "json_object"}, **_chat_kwargs(prompt, model)
    )
    return response.choices[0].message.content.strip()


def _call_huggingface(prompt: str, model: str, timeout: float) -> str:
    """Call the Hugging Face router."""
    client = _get_huggingface_client(timeout)
    response = client.chat.completions.create(**_chat_kwargs(prompt, model))
    return response.choices[0].message.content.strip()


async def _call_anthropic_async(prompt: str, model: str, timeout: float) -> str:
    client = _get_anthropic_client(timeout, is_async=True)
    response = await client.messages.create(**_chat_kwargs(prompt, model))
    return response.content[0].text.strip()


async def _call_openai_async(prompt: str, model: str, timeout: float) -> str:
    client = _get_openai_client(timeout, is_async=True)
    response = await client.chat.completions.create(
        response_format={"type": "json_object"}, **_chat_kwargs(prompt, model)
    )
    return response.choices[0].message.content.strip()


async def _call_azure_openai_async(prompt: str, model: str, timeout: float) -> str:
    client = _get_azure_openai_client(timeout, is_async=True)
    response = await client.chat.completions.create(
        response_format={"type": "json_object"}, **_chat_kwargs(prompt, model)
    )
    return response.choices[0].message.content.strip()


async def _call_huggingface_async(prompt: str, model: str, timeout: float) -> str:
    client = _get_huggingface_client(timeout, is_async=True)
    response = await client.chat.completions.create(**_chat_kwargs(prompt, model))
    return response.choices[0].message.content.strip()


def _resolve_model(provider: str, model: Optional[str]) -> str:
    if provider not in {p.value for p in LLMProvider}:
        raise ValueError(f"Unsupported LLM provider: {provider}")
    return model or DEFAULT_MODELS[LLMProvider(provider)]


def build_prompt(text: str, base: ParsedExpense, taxonomy: Taxonomy) -> str:
    """Build the structured-extraction prompt for one message."""
    categories = "|".join(taxonomy.labels("categories") + [FALLBACK_LABEL])
    purposes = "|".join(taxonomy.labels("purposes") + [FALLBACK_LABEL])
    places = "|".join(taxonomy.labels("places") + [FALLBACK_LABEL])
    return f"""Extract expense information from the following English text:
"{text}"

Today's date is {base.date} unless the text says otherwise.

Return ONLY a JSON object (no markdown, no explanation):
{{
  "date": "YYYY-MM-DD",
  "category": "{categories}",
  "purpose": "{purposes}",
  "place": "{places}",
  "amount": number,
  "description": "original text"
}}"""


def _strip_code_fence(response_text: str) -> str:
    """Handle markdown code blocks if present."""
    if not response_text.startswith("```"):
        return response_text
    lines = response_text.split("\n")
    json_lines = []
    in_code = False
    for line in lines:
        if line.startswith("```"):
            in_code = not in_code
            continue
        if in_code:
            json_lines.append(line)
    return "\n".join(json_lines)


def parse_llm_response(response_text: str) -> Dict:
    """Parse a provider reply into a dict. Raises ValueError on anything else."""
    result = json.loads(_strip_code_fence((response_text or "").strip()))
    if not isinstance(result, dict):
        raise ValueError(f"Expected a JSON object, got {type(result).__name__}")
    return result


def _match_label(value, labels) -> Optional[str]:
    if not isinstance(value, str):
        return None
    wanted = value.strip().lower()
    for label in list(labels) + [FALLBACK_LABEL]:
        if label.lower() == wanted:
            return label
    return None


def _valid_date(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    try:
        return dt.date.fromisoformat(value.strip()).isoformat()
    except ValueError:
        return None


def _valid_amount(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        amount = float(value)
    elif isinstance(value, str):
        amount = normalize_amount(value)
    else:
        return None
    if amount is None or amount != amount or amount <= 0:
        return None
    return amount


def overlay(base: ParsedExpense, fields: Dict, taxonomy: Taxonomy) -> ParsedExpense:
    """
    Overlay validated service fields onto the base record.

    Fields that are missing, null or invalid keep the base value. The
    description always stays the original message.
    """
    changes = {}
    date = _valid_date(fields.get("date"))
    if date:
        changes["date"] = date
    for field, section in (("category", "categories"), ("purpose", "purposes"), ("place", "places")):
        label = _match_label(fields.get(field), taxonomy.labels(section))
        if label:
            changes[field] = label
    amount = _valid_amount(fields.get("amount"))
    if amount is not None:
        changes["amount"] = amount
    return base.with_fields(**changes) if changes else base


def _call_provider(prompt: str, provider: str, model: str, timeout: float) -> str:
    if provider == LLMProvider.ANTHROPIC:
        return _call_anthropic(prompt, model, timeout)
    elif provider == LLMProvider.OPENAI:
        return _call_openai(prompt, model, timeout)
    elif provider == LLMProvider.AZURE_OPENAI:
        return _call_azure_openai(prompt, model, timeout)
    elif provider == LLMProvider.HUGGINGFACE:
        return _call_huggingface(prompt, model, timeout)
    raise ValueError(f"Unsupported LLM provider: {provider}")


async def _call_provider_async(prompt: str, provider: str, model: str, timeout: float) -> str:
    if provider == LLMProvider.ANTHROPIC:
        return await _call_anthropic_async(prompt, model, timeout)
    elif provider == LLMProvider.OPENAI:
        return await _call_openai_async(prompt, model, timeout)
    elif provider == LLMProvider.AZURE_OPENAI:
        return await _call_azure_openai_async(prompt, model, timeout)
    elif provider == LLMProvider.HUGGINGFACE:
        return await _call_huggingface_async(prompt, model, timeout)
    raise ValueError(f"Unsupported LLM provider: {provider}")


def augment_with_llm(text: str, base: ParsedExpense, taxonomy: Taxonomy,
                     provider: str = "openai",
                     model: Optional[str] = None,
                     timeout: float = DEFAULT_TIMEOUT_SECS,
                     verbose: bool = False) -> ParsedExpense:
    """
    Refine a parsed expense with an LLM.

    Args:
        text: Original message
        base: Record from the rule-based pipeline
        taxonomy: Labels the service may answer with
        provider: LLM provider to use ("openai", "anthropic", "azure-openai", "huggingface")
        model: Model name (uses default for provider if not specified)
        timeout: Seconds before the call counts as failed
        verbose: Print the failure reason

    Returns:
        The overlaid record, or ``base`` unchanged on any failure
    """
    try:
        model = _resolve_model(provider, model)
        prompt = build_prompt(text, base, taxonomy)
        response_text = _call_provider(prompt, provider, model, timeout)
        return overlay(base, parse_llm_response(response_text), taxonomy)
    except Exception as e:
        if verbose:
            print(f"  [DEBUG] LLM augmentation failed, keeping base result: {e}")
        return base


async def augment_with_llm_async(text: str, base: ParsedExpense, taxonomy: Taxonomy,
                                 provider: str = "openai",
                                 model: Optional[str] = None,
                                 timeout: float = DEFAULT_TIMEOUT_SECS,
                                 verbose: bool = False) -> ParsedExpense:
    """Async form of :func:`augment_with_llm`, same never-raise contract."""
    try:
        model = _resolve_model(provider, model)
        prompt = build_prompt(text, base, taxonomy)
        response_text = await asyncio.wait_for(
            _call_provider_async(prompt, provider, model, timeout), timeout
        )
        return overlay(base, parse_llm_response(response_text), taxonomy)
    except Exception as e:
        if verbose:
            print(f"  [DEBUG] LLM augmentation failed, keeping base result: {e}")
        return base
