"""
Environment-driven settings.
"""

import os
from functools import lru_cache
from typing import Optional

LLM_PROVIDERS = ["openai", "anthropic", "azure-openai", "huggingface"]


class Settings:
    def __init__(
        self,
        taxonomy_path: Optional[str],
        use_llm: bool,
        llm_provider: str,
        llm_model: Optional[str],
        llm_timeout_secs: float,
    ) -> None:
        self.taxonomy_path = taxonomy_path
        self.use_llm = use_llm
        self.llm_provider = llm_provider
        self.llm_model = llm_model
        self.llm_timeout_secs = llm_timeout_secs


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        taxonomy_path=os.getenv("EXPENSE_PARSER_TAXONOMY") or None,
        use_llm=_env_flag("EXPENSE_PARSER_USE_LLM"),
        llm_provider=os.getenv("LLM_PROVIDER", "openai"),
        llm_model=os.getenv("LLM_MODEL") or None,
        llm_timeout_secs=float(os.getenv("LLM_TIMEOUT_SECS", "10")),
    )
