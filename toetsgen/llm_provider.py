import json
import logging
import os
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)


PROVIDER_REGISTRY = {
    "gemini": {
        "label": "Google Gemini",
        "env_key": "GEMINI_API_KEY",
        "default_model": "gemini-2.5-flash",
    },
    "gemini-pro": {
        "label": "Google Gemini Pro",
        "env_key": "GEMINI_API_KEY",
        "default_model": "gemini-2.5-pro",
    },
    "mock": {
        "label": "Mock (geen API-kosten)",
    },
}

MISSING_KEY_MESSAGE = "API-sleutel ontbreekt. Stel GEMINI_API_KEY in (bijvoorbeeld in het .env-bestand)."
PROVIDER_FAILED_MESSAGE = "De AI-dienst is op dit moment niet bereikbaar. Probeer het later opnieuw."


class ProviderError(Exception):
    """An LLM provider call failed.

    ``message`` is the technical detail for the log; ``user_message`` is the
    Dutch text that may be shown to the teacher.
    """

    def __init__(self, message, user_message=None):
        super().__init__(message)
        self.user_message = user_message or PROVIDER_FAILED_MESSAGE


class LLMProvider(ABC):
    """
    Abstract base class for a generic LLM provider.
    This defines the interface that all concrete providers must implement.
    """

    @abstractmethod
    def generate(self, prompt_parts: list, json_mode: bool = False, response_schema: Optional[dict] = None) -> str:
        """
        Generates content based on a list of prompt parts.

        Args:
            prompt_parts (list): A list of prompt strings.
            json_mode (bool): Whether to force JSON output.
            response_schema (dict): Optional schema the JSON output must follow.

        Returns:
            str: The generated text from the language model.

        Raises:
            ProviderError: if the provider rejects the request.
        """
        pass

    @abstractmethod
    def search(self, prompt: str) -> Tuple[str, List[dict]]:
        """
        Answers a prompt with web search grounding.

        Returns:
            (text, sources) where sources is a list of {"title", "uri"} dicts.

        Raises:
            ProviderError: if the provider rejects the request.
        """
        pass


def _extract_sources(response) -> List[dict]:
    """Pull {title, uri} pairs out of the grounding metadata of a response."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []
    sources = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        if not web:
            continue
        sources.append({"title": web.title or "Bron", "uri": web.uri or "#"})
    return sources


class GeminiProvider(LLMProvider):
    """
    Concrete implementation of the LLMProvider for Google's Gemini models,
    using the unified google-genai client.
    """

    def __init__(self, api_key: str, model_name: str = "gemini-2.5-flash", search_model_name: Optional[str] = None):
        self.client = genai.Client(api_key=api_key)
        self._model_name = model_name
        self._search_model_name = search_model_name or model_name

    def generate(self, prompt_parts: list, json_mode: bool = False, response_schema: Optional[dict] = None) -> str:
        config = None
        if json_mode:
            config = {"response_mime_type": "application/json"}
            if response_schema:
                config["response_schema"] = response_schema
        try:
            response = self.client.models.generate_content(
                model=self._model_name,
                contents=prompt_parts,
                config=config,
            )
        except Exception as e:
            logger.error("Gemini generate_content failed: %s", e)
            raise ProviderError(str(e)) from e
        return response.text or ""

    def search(self, prompt: str) -> Tuple[str, List[dict]]:
        config = types.GenerateContentConfig(
            tools=[types.Tool(google_search=types.GoogleSearch())],
        )
        try:
            response = self.client.models.generate_content(
                model=self._search_model_name,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            logger.error("Gemini search request failed: %s", e)
            raise ProviderError(str(e)) from e
        return response.text or "", _extract_sources(response)


class MockLLMProvider(LLMProvider):
    """Zero-cost provider returning fabricated responses for development and tests."""

    def __init__(self):
        self.calls = []

    def generate(self, prompt_parts: list, json_mode: bool = False, response_schema: Optional[dict] = None) -> str:
        from toetsgen.mock_responses import get_exam_response

        self.calls.append({"kind": "generate", "prompt_parts": prompt_parts, "json_mode": json_mode})
        scheme_id = None
        if response_schema:
            taxonomy = response_schema.get("properties", {}).get("taxonomy", {})
            scheme_id = (taxonomy.get("enum") or [None])[0]
        if scheme_id:
            return get_exam_response(scheme_id)
        return get_exam_response()

    def search(self, prompt: str) -> Tuple[str, List[dict]]:
        from toetsgen.mock_responses import get_topic_suggestion_response

        self.calls.append({"kind": "search", "prompt": prompt})
        return get_topic_suggestion_response()


def get_provider_info(config):
    """Describe the configured provider for display in the UI."""
    provider_name = config.get("llm", {}).get("provider", "mock")
    meta = PROVIDER_REGISTRY.get(provider_name, {})
    env_key = meta.get("env_key")
    return {
        "name": provider_name,
        "label": meta.get("label", provider_name),
        "model": config.get("llm", {}).get("model_name") or meta.get("default_model"),
        "configured": env_key is None or bool(os.getenv(env_key)),
    }


def get_provider(config):
    """
    Factory function to instantiate the correct LLM provider based on config.

    Raises:
        ProviderError: when the credential for the selected provider is missing.
        ValueError: for an unknown provider name.
    """
    llm_config = config.get("llm", {})
    provider_name = llm_config.get("provider", "gemini")

    if provider_name == "mock":
        return MockLLMProvider()

    meta = PROVIDER_REGISTRY.get(provider_name)
    if meta is None:
        raise ValueError(f"Unsupported LLM provider: {provider_name}")

    api_key = os.getenv(meta["env_key"])
    if not api_key:
        raise ProviderError(
            f"{meta['env_key']} is not set in the environment for provider '{provider_name}'.",
            MISSING_KEY_MESSAGE,
        )
    return GeminiProvider(
        api_key=api_key,
        model_name=llm_config.get("model_name") or meta["default_model"],
        search_model_name=llm_config.get("search_model_name"),
    )


def describe_response(text: str, limit: int = 200) -> str:
    """Shorten a raw provider response for log messages."""
    text = text or ""
    if len(text) <= limit:
        return json.dumps(text, ensure_ascii=False)
    return json.dumps(text[:limit] + "...", ensure_ascii=False)
