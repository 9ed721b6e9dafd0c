# core/llm_interface.py
"""
Handles all direct interactions with Large Language Models (LLMs)
and embedding models (via Ollama). Includes functions for API calls,
response cleaning, and embedding generation with caching.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.

Copyright 2025 Dennis Lewis
"""

# Standard library imports
import asyncio
import functools
import json
import random
import re

# Type hints
from collections.abc import Sequence
from typing import Any

import httpx

# Third-party imports
import numpy as np
import structlog
import tiktoken
from async_lru import alru_cache

# Local imports
from config import settings
from models import ChatMessage

logger = structlog.get_logger(__name__)


class ModelGatewayError(Exception):
    """Raised when the model gateway cannot produce a response."""


class EmbeddingError(Exception):
    """Raised internally when no usable embedding could be obtained."""


# Token parameter handling
def _completion_token_param(api_base: str) -> str:
    """Return the token count parameter expected by the provider."""
    if "api.openai.com" in api_base or "api.anthropic.com" in api_base:
        return "max_completion_tokens"
    return "max_tokens"


# --- Tokenizer Cache and Utility Functions (Module Level) ---
_tokenizer_cache: dict[str, tiktoken.Encoding] = {}


@functools.lru_cache(maxsize=settings.TOKENIZER_CACHE_SIZE)
def _get_tokenizer(model_name: str) -> tiktoken.Encoding | None:
    """
    Gets a tiktoken encoder for the given model name, with caching.
    Tries model-specific encoding, then a default, then returns None.
    """
    if model_name in _tokenizer_cache:
        return _tokenizer_cache[model_name]

    try:
        try:
            encoder = tiktoken.encoding_for_model(model_name)
        except KeyError:
            logger.debug(
                f"No direct tiktoken encoding for '{model_name}'. Using default '{settings.TIKTOKEN_DEFAULT_ENCODING}'."
            )
            encoder = tiktoken.get_encoding(settings.TIKTOKEN_DEFAULT_ENCODING)

        _tokenizer_cache[model_name] = encoder
        return encoder
    except KeyError:
        logger.error(
            f"Default tiktoken encoding '{settings.TIKTOKEN_DEFAULT_ENCODING}' also not found. "
            f"Token counting will fall back to character-based heuristic for '{model_name}'."
        )
        return None
    except Exception as e:
        logger.error(
            f"Unexpected error getting tokenizer for '{model_name}': {e}",
            exc_info=True,
        )
        return None


def count_tokens(text: str, model_name: str) -> int:
    """
    Counts the number of tokens in a string for a given model.
    Uses tiktoken with caching and fallbacks.
    """
    if not text:
        return 0

    encoder = _get_tokenizer(model_name)

    if encoder:
        return len(encoder.encode(text, allowed_special="all"))
    char_count = len(text)
    return max(1, int(char_count / settings.FALLBACK_CHARS_PER_TOKEN))


def truncate_text_by_tokens(
    text: str,
    model_name: str,
    max_tokens: int,
    truncation_marker: str = "\n... (truncated)",
) -> str:
    """
    Truncates text to a maximum number of tokens for a given model.
    Adds a truncation marker if truncation occurs.
    """
    if not text:
        return ""

    encoder = _get_tokenizer(model_name)

    if not encoder:
        max_chars = int(max_tokens * settings.FALLBACK_CHARS_PER_TOKEN)
        if len(text) > max_chars:
            effective_max_chars = max(0, max_chars - len(truncation_marker))
            return text[:effective_max_chars] + truncation_marker
        return text

    tokens = encoder.encode(text, allowed_special="all")
    if len(tokens) <= max_tokens:
        return text

    marker_tokens_len = len(encoder.encode(truncation_marker, allowed_special="all"))
    content_tokens_to_keep = max_tokens - marker_tokens_len
    effective_truncation_marker = truncation_marker
    if content_tokens_to_keep <= 0:
        content_tokens_to_keep = max_tokens
        effective_truncation_marker = ""

    logger.info(
        f"Truncating text for '{model_name}' from {len(tokens)} to {content_tokens_to_keep} tokens."
    )
    return encoder.decode(tokens[:content_tokens_to_keep]) + effective_truncation_marker


class LLMService:
    """Utility class for interacting with LLM and embedding endpoints."""

    def __init__(self, timeout: float = settings.HTTPX_TIMEOUT):
        # Use a single async client for all requests to reuse connections
        self._client = httpx.AsyncClient(timeout=timeout)
        # Add a semaphore to limit concurrent requests
        self._semaphore = asyncio.Semaphore(settings.MAX_CONCURRENT_LLM_CALLS)
        self.request_count = 0
        logger.info(
            f"LLMService initialized with a concurrency limit of {settings.MAX_CONCURRENT_LLM_CALLS}."
        )

    async def _backoff_delay(self, attempt: int) -> None:
        """Sleep for an exponentially increasing delay with jitter."""
        delay = settings.LLM_RETRY_DELAY_SECONDS * (2**attempt)
        jitter = random.uniform(0, delay / 2)
        await asyncio.sleep(delay + jitter)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _validate_embedding(
        self,
        embedding_list: list[float | int],
        expected_dim: int,
        dtype: np.dtype | str,
    ) -> np.ndarray | None:
        """Helper to validate and convert a list to a 1D numpy embedding."""
        try:
            embedding = np.array(embedding_list).astype(dtype)
            if embedding.ndim > 1:
                logger.warning(
                    f"Embedding from source had unexpected ndim > 1: {embedding.ndim}. Flattening."
                )
                embedding = embedding.flatten()
            if embedding.shape == (expected_dim,):
                return embedding
            logger.error(
                f"Embedding dimension mismatch: Expected ({expected_dim},), Got {embedding.shape}."
            )
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to convert embedding list to numpy array: {e}")
        return None

    async def _request_embedding(self, text: str) -> np.ndarray | None:
        """Call the embedding endpoint with retries. Returns None on failure."""
        payload = {"model": settings.EMBEDDING_MODEL, "prompt": text.strip()}
        last_exception: Exception | None = None
        for attempt in range(settings.LLM_RETRY_ATTEMPTS):
            api_response: httpx.Response | None = None
            try:
                self.request_count += 1
                api_response = await self._client.post(
                    f"{settings.OLLAMA_EMBED_URL}/api/embeddings", json=payload
                )
                api_response.raise_for_status()
                data = api_response.json()

                raw_embedding = data.get("embedding")
                if isinstance(raw_embedding, list):
                    embedding = self._validate_embedding(
                        raw_embedding,
                        settings.EXPECTED_EMBEDDING_DIM,
                        settings.EMBEDDING_DTYPE,
                    )
                    if embedding is not None:
                        return embedding
                logger.error(
                    f"Ollama (Attempt {attempt + 1}): No suitable embedding list found in response."
                )
                last_exception = ValueError("No suitable embedding in Ollama response.")
            except httpx.HTTPStatusError as e_status:
                last_exception = e_status
                logger.warning(
                    f"Ollama Embedding (Attempt {attempt + 1}/{settings.LLM_RETRY_ATTEMPTS}): HTTP status {e_status.response.status_code}."
                )
                if 400 <= e_status.response.status_code < 500:
                    logger.error(
                        f"Ollama Embedding: Client-side error {e_status.response.status_code}. Aborting retries."
                    )
                    return None
            except (httpx.RequestError, json.JSONDecodeError) as e_req:
                last_exception = e_req
                logger.warning(
                    f"Ollama Embedding (Attempt {attempt + 1}/{settings.LLM_RETRY_ATTEMPTS}): {type(e_req).__name__}: {e_req}"
                )

            if attempt < settings.LLM_RETRY_ATTEMPTS - 1:
                await self._backoff_delay(attempt)

        logger.error(
            f"Ollama Embedding: All {settings.LLM_RETRY_ATTEMPTS} attempts failed. Last error: {last_exception}"
        )
        return None

    @alru_cache(maxsize=settings.EMBEDDING_CACHE_SIZE)
    async def _cached_embedding(self, text: str) -> np.ndarray:
        async with self._semaphore:
            embedding = await self._request_embedding(text)
        if embedding is None:
            # Raising keeps failures out of the LRU cache.
            raise EmbeddingError(f"No embedding for text '{text[:40]}...'")
        return embedding

    async def async_get_embedding(self, text: str) -> np.ndarray | None:
        """Return the embedding for ``text`` or ``None`` if it cannot be computed."""
        if not text or not isinstance(text, str) or not text.strip():
            logger.warning(
                "async_get_embedding: empty or invalid text provided. Returning None."
            )
            return None
        try:
            return await self._cached_embedding(text)
        except EmbeddingError:
            return None

    def _log_llm_usage(
        self, task_label: str, model_name: str, usage_data: dict[str, int] | None
    ) -> None:
        """Helper to log LLM token usage if available in the response."""
        if usage_data and isinstance(usage_data, dict):
            logger.info(
                f"LLM task={task_label} ('{model_name}') Usage - Prompt: {usage_data.get('prompt_tokens', 'N/A')} tk, "
                f"Comp: {usage_data.get('completion_tokens', 'N/A')} tk, Total: {usage_data.get('total_tokens', 'N/A')} tk"
            )

    async def _post_chat(
        self, payload: dict[str, Any], headers: dict[str, str]
    ) -> tuple[str, dict[str, int] | None]:
        """Send a regular chat completion request."""
        response = await self._client.post(
            f"{settings.OPENAI_API_BASE}/chat/completions",
            json=payload,
            headers=headers,
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ModelGatewayError(
                f"Invalid response from '{payload['model']}': body is {type(data).__name__}, expected an object"
            )
        choices = data.get("choices")
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content:
            raise ModelGatewayError(
                f"Invalid response structure from '{payload['model']}': missing choices/content"
            )
        usage = data.get("usage")
        return content, usage if isinstance(usage, dict) else None

    def _estimate_usage(
        self, model_name: str, messages: Sequence[ChatMessage], text: str
    ) -> dict[str, int]:
        prompt_tokens = sum(count_tokens(m["content"], model_name) for m in messages)
        completion_tokens = count_tokens(text, model_name)
        return {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        }

    async def _call_model_with_retries(
        self,
        model_name: str,
        payload: dict[str, Any],
        headers: dict[str, str],
    ) -> tuple[str, dict[str, int] | None, Exception | None]:
        """Try calling the model with retry logic."""
        last_exc: Exception | None = None
        for retry_attempt in range(settings.LLM_RETRY_ATTEMPTS):
            try:
                self.request_count += 1
                text, usage = await self._post_chat(payload, headers)
                return text, usage, None
            except (httpx.HTTPError, json.JSONDecodeError, ModelGatewayError) as exc:
                last_exc = exc
                logger.warning(
                    f"Async LLM ('{model_name}' Attempt {retry_attempt + 1}): {exc}"
                )
                if (
                    isinstance(exc, httpx.HTTPStatusError)
                    and 400 <= exc.response.status_code < 500
                    and exc.response.status_code != 429
                ):
                    logger.error(
                        f"Async LLM: '{model_name}' failed with non-429 client error. Not retrying."
                    )
                    break
            if retry_attempt < settings.LLM_RETRY_ATTEMPTS - 1:
                await self._backoff_delay(retry_attempt)
        return "", None, last_exc

    async def async_generate(
        self,
        task_label: str,
        messages: Sequence[ChatMessage],
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        allow_fallback: bool = True,
        auto_clean_response: bool = False,
    ) -> tuple[str, dict[str, int]]:
        """Generate text for ``task_label`` from a chat message list.

        The task label picks the model through ``settings.TASK_MODEL_MAP``.
        Raises :class:`ModelGatewayError` when the primary model and the
        optional fallback model both fail.
        """
        if not messages:
            raise ModelGatewayError("At least one message is required")

        model_name = settings.model_for_task(task_label)
        if max_tokens is None:
            max_tokens = (
                settings.DECK_MAX_TOKENS
                if task_label == "ppt_gen"
                else settings.MAX_GENERATION_TOKENS
            )
        effective_temperature = (
            temperature if temperature is not None else settings.TEMPERATURE_DEFAULT
        )

        wire_messages: list[dict[str, str]] = []
        if system_prompt:
            wire_messages.append({"role": "system", "content": system_prompt})
        wire_messages.extend(
            {"role": m["role"], "content": m["content"]} for m in messages
        )

        headers = {
            "Authorization": f"Bearer {settings.OPENAI_API_KEY}",
            "Content-Type": "application/json",
        }

        candidates = [model_name]
        if (
            allow_fallback
            and settings.FALLBACK_GENERATION_MODEL
            and settings.FALLBACK_GENERATION_MODEL != model_name
        ):
            candidates.append(settings.FALLBACK_GENERATION_MODEL)

        last_exc: Exception | None = None
        async with self._semaphore:
            for current_model in candidates:
                payload: dict[str, Any] = {
                    "model": current_model,
                    "messages": wire_messages,
                    "temperature": effective_temperature,
                    "top_p": settings.LLM_TOP_P,
                    _completion_token_param(settings.OPENAI_API_BASE): max_tokens,
                    "stream": False,
                }
                logger.debug(
                    f"Async Calling LLM '{current_model}' for task '{task_label}'. "
                    f"Messages: {len(wire_messages)}. Max output tokens: {max_tokens}."
                )
                text, usage, last_exc = await self._call_model_with_retries(
                    current_model, payload, headers
                )
                if last_exc is None:
                    if not usage:
                        usage = self._estimate_usage(current_model, messages, text)
                    self._log_llm_usage(task_label, current_model, usage)
                    if auto_clean_response:
                        text = self.clean_model_response(text)
                    return text, usage
                if current_model != candidates[-1]:
                    logger.info(
                        f"Primary model '{current_model}' failed. Attempting fallback with '{candidates[-1]}'."
                    )

        raise ModelGatewayError(
            f"Model gateway failed for task '{task_label}': {last_exc}"
        ) from last_exc

    def clean_model_response(self, text: str) -> str:
        """Cleans common artifacts from LLM text responses, including content within <think> tags and normalizes newlines."""
        if not isinstance(text, str):
            logger.warning(
                f"clean_model_response received non-string input: {type(text)}. Returning empty string."
            )
            return ""

        cleaned_text = text
        for tag_name in ("think", "thought", "thinking", "reasoning", "analysis"):
            cleaned_text = re.sub(
                rf"<\s*{tag_name}\s*>.*?<\s*/\s*{tag_name}\s*>",
                "",
                cleaned_text,
                flags=re.DOTALL | re.IGNORECASE,
            )
            cleaned_text = re.sub(
                rf"<\s*/?\s*{tag_name}\s*/?\s*>",
                "",
                cleaned_text,
                flags=re.IGNORECASE,
            )

        common_phrases_patterns = [
            r"^\s*(Okay,\s*)?(Sure,\s*)?(Here's|Here is)\s+(the|your)\s+[\w\s]+?:\s*",
            r"^\s*Certainly! Here is the text:\s*",
            r"^\s*(?:Output|Result|Response)\s*:\s*",
            r"\s*Let me know if you (need|have) any(thing else| other questions| further revisions| adjustments)\b.*?\.?[^\w\n]*$",
            r"\s*I hope this (meets your expectations|helps|is what you were looking for)\b.*?\.?[^\w\n]*$",
        ]
        for pattern_str in common_phrases_patterns:
            cleaned_text = re.sub(
                pattern_str,
                "",
                cleaned_text,
                count=1,
                flags=re.IGNORECASE | re.MULTILINE,
            ).strip()

        final_text = re.sub(r"\n\s*\n(\s*\n)+", "\n\n", cleaned_text.strip())
        return final_text


# Instantiate the service for other modules to import and use
llm_service = LLMService()
