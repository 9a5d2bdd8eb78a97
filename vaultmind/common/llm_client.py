"""
Provider-agnostic LLM client for VaultMind.

Supports OpenAI, Anthropic, and Google Gemini with a shared text-generation
interface, plus text embeddings for the providers that offer them.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

logger = logging.getLogger("vaultmind.common.llm_client")

SUPPORTED_PROVIDERS = ("openai", "anthropic", "google")


class LLMClient:
    """Unified text generation client across LLM providers."""

    def __init__(
        self,
        provider: str = "openai",
        model: str = "",
        api_key: Optional[str] = None,
        embedding_model: str = "",
    ) -> None:
        self.provider = (provider or "openai").lower()
        self.model = model
        self.embedding_model = embedding_model
        self._client = None

        if self.provider not in SUPPORTED_PROVIDERS:
            logger.warning("Unsupported LLM provider: %s", self.provider)
            return

        if not api_key:
            logger.info("%s API key not provided, LLM client unavailable", self.provider)
            return

        try:
            if self.provider == "openai":
                from openai import OpenAI

                self._client = OpenAI(api_key=api_key)
            elif self.provider == "anthropic":
                import anthropic

                self._client = anthropic.Anthropic(api_key=api_key)
            else:
                import google.generativeai as genai

                genai.configure(api_key=api_key)
                self._client = genai  # Store the module, not a model instance
                self._google_models = {}  # Cache models by system prompt hash
        except ImportError:
            logger.warning("%s SDK package not installed", self.provider)
        except Exception as e:
            logger.warning("Failed to initialize %s client: %s", self.provider, e)

    @property
    def is_available(self) -> bool:
        return self._client is not None

    @property
    def supports_embeddings(self) -> bool:
        # Anthropic has no embedding endpoint
        return self.provider in ("openai", "google") and bool(self.embedding_model)

    def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        history: Sequence[Tuple[str, str]] = (),
        max_tokens: int = 1000,
        temperature: float = 0.7,
        timeout: float = 60.0,
    ) -> str:
        """Run one completion.

        ``history`` is a sequence of (role, content) pairs with role in
        {"user", "assistant"}, sent before ``prompt`` as prior chat turns.
        """
        if not self.is_available:
            raise RuntimeError("LLM client is not available")

        turns = [{"role": role, "content": content} for role, content in history]
        turns.append({"role": "user", "content": prompt})

        if self.provider == "openai":
            messages = []
            if system:
                messages.append({"role": "system", "content": system})
            messages.extend(turns)
            response = self._client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=messages,
                timeout=timeout,
            )
            return (response.choices[0].message.content or "").strip()

        if self.provider == "anthropic":
            kwargs = {}
            if system:
                kwargs["system"] = system
            response = self._client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=turns,
                timeout=timeout,
                **kwargs,
            )
            return response.content[0].text.strip()

        if self.provider == "google":
            import hashlib

            cache_key = hashlib.md5((system or "").encode()).hexdigest()
            if cache_key not in self._google_models:
                kwargs = {"model_name": self.model}
                if system:
                    kwargs["system_instruction"] = system
                self._google_models[cache_key] = self._client.GenerativeModel(**kwargs)
            model = self._google_models[cache_key]
            contents = [
                {"role": "model" if t["role"] == "assistant" else "user", "parts": [t["content"]]}
                for t in turns
            ]
            response = model.generate_content(
                contents,
                generation_config={"max_output_tokens": max_tokens, "temperature": temperature},
                request_options={"timeout": timeout},
            )
            return response.text.strip()

        raise RuntimeError(f"Unsupported LLM provider: {self.provider}")

    def embed(self, text: str, *, timeout: float = 30.0) -> List[float]:
        """Embed a single text with the provider's embedding endpoint."""
        if not self.is_available:
            raise RuntimeError("LLM client is not available")

        if self.provider == "openai":
            response = self._client.embeddings.create(
                model=self.embedding_model,
                input=text,
                timeout=timeout,
            )
            return list(response.data[0].embedding)

        if self.provider == "google":
            result = self._client.embed_content(
                model=self.embedding_model,
                content=text,
                request_options={"timeout": timeout},
            )
            return list(result["embedding"])

        raise RuntimeError(f"{self.provider} does not provide an embedding endpoint")


def create_llm_client(llm_config, embedding_model: str = "") -> LLMClient:
    """Build an LLMClient for the provider selected in an LLMConfig."""
    return LLMClient(
        provider=llm_config.provider,
        model=llm_config.model,
        api_key=llm_config.api_key or None,
        embedding_model=embedding_model,
    )
