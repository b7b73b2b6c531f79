"""Caller model name to backend model id resolution."""

import logging
from typing import Mapping, Optional

logger = logging.getLogger("nim-proxy")

DEFAULT_REQUEST_MODEL = "gpt-4o"

# Caller-facing name -> NIM model id. Also the list served by /v1/models.
MODEL_MAP: dict[str, str] = {
    "gpt-3.5-turbo": "z-ai/glm5",
    "gpt-4": "moonshotai/kimi-k2.5",
    "gpt-4-turbo": "qwen/qwen3.5-397b-a17b",
    "gpt-4o": "z-ai/glm5",
    "claude-3-opus": "moonshotai/kimi-k2.5",
    "claude-3-sonnet": "qwen/qwen3.5-397b-a17b",
    "gemini-pro": "z-ai/glm5",
}

LARGE_FALLBACK_MODEL = "meta/llama-3.1-405b-instruct"
MID_FALLBACK_MODEL = "meta/llama-3.1-70b-instruct"
SMALL_FALLBACK_MODEL = "meta/llama-3.1-8b-instruct"

# Checked in order, first match wins.
FALLBACK_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("gpt-4", "opus", "405b"), LARGE_FALLBACK_MODEL),
    (("claude", "gemini", "70b"), MID_FALLBACK_MODEL),
)


def resolve_fallback(name: str) -> str:
    """Pick a backend model from keywords in an unmapped model name."""
    lower = name.lower()
    for keywords, backend_model in FALLBACK_RULES:
        if any(keyword in lower for keyword in keywords):
            return backend_model
    return SMALL_FALLBACK_MODEL


class ModelResolver:
    """Maps caller model names to backend model ids.

    Exact table entries always win over the keyword fallback, so the
    resolver is total and deterministic for a given table.
    """

    def __init__(self, overrides: Optional[Mapping[str, str]] = None) -> None:
        self.table: dict[str, str] = dict(MODEL_MAP)
        if overrides:
            self.table.update({str(k): str(v) for k, v in overrides.items()})

    def resolve(self, name: str) -> str:
        backend_model = self.table.get(name)
        if backend_model is not None:
            return backend_model
        backend_model = resolve_fallback(name)
        logger.debug("Model %s not in table; fallback picked %s", name, backend_model)
        return backend_model

    def model_names(self) -> list[str]:
        return list(self.table.keys())
