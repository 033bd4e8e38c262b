"""
RFP Manager - Base LLM Configuration

Provides the completion client (OpenAI, Anthropic, Gemini through CrewAI's
LLM wrapper) and the shared call-and-fallback plumbing used by every agent.
"""

import json
import logging
from typing import Any, Callable, Optional, Protocol

from crewai import LLM

from config.settings import settings, LLMProvider
from schemas.ai import AIResult

logger = logging.getLogger("rfp_manager.agents")


class CompletionClient(Protocol):
    """Anything with CrewAI's LLM.call(messages) -> str signature."""

    def call(self, messages: list[dict]) -> str:
        ...


class MissingCredentialsError(RuntimeError):
    """No API key configured for the active provider."""


def get_llm(
    provider: Optional[LLMProvider] = None,
    model: Optional[str] = None,
    temperature: Optional[float] = None
) -> LLM:
    """
    Get an LLM instance for the specified or configured provider.

    Raises:
        MissingCredentialsError: If the provider has no API key configured
    """
    provider = provider or settings.llm_provider
    model = model or settings.default_model
    temperature = temperature if temperature is not None else settings.llm_temperature

    api_key = settings.api_key_for(provider)
    if not api_key:
        raise MissingCredentialsError(f"Missing {provider.value} API key")

    prefix = f"{provider.value}/"
    return LLM(
        model=model if model.startswith(prefix) else prefix + model,
        temperature=temperature,
        api_key=api_key
    )


def parse_json_output(output: str, required_keys: list[str]) -> dict:
    """
    Parse JSON output from a completion.

    Handles replies wrapped in markdown code fences.

    Raises:
        ValueError: If output is not a JSON object or lacks required keys
    """
    output = (output or "").strip()
    if "```json" in output:
        start = output.find("```json") + 7
        end = output.find("```", start)
        output = output[start:end if end != -1 else None].strip()
    elif "```" in output:
        start = output.find("```") + 3
        end = output.find("```", start)
        output = output[start:end if end != -1 else None].strip()

    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON output: {e}")

    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object")

    missing = [key for key in required_keys if key not in data]
    if missing:
        raise ValueError(f"Missing required keys in output: {missing}")

    return data


def run_completion(
    name: str,
    messages: list[dict],
    parse: Callable[[str], Any],
    fallback: Callable[[], Any],
    llm: Optional[CompletionClient] = None
) -> AIResult:
    """
    Call the completion service and parse the reply; never raises.

    Any failure (no credentials, transport error, unparseable reply) is
    logged and replaced by the deterministic fallback payload.
    """
    try:
        client = llm or get_llm()
        raw = client.call(messages)
        data = parse(raw)
    except Exception as e:
        logger.warning(f"{name}: using fallback ({type(e).__name__}: {e})")
        return AIResult.fallback(fallback(), f"{type(e).__name__}: {e}")

    logger.info(f"{name}: completion parsed")
    return AIResult.completion(data)


def get_completion_client() -> Optional[CompletionClient]:
    """
    FastAPI dependency for the completion client.

    None means each call resolves the configured provider itself; tests
    override this with an in-memory client.
    """
    return None
