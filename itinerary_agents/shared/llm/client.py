"""
OpenAI client with retry logic.

Provides a cached async client instance and a wrapper for LLM calls with
automatic retries using tenacity.
"""

import os
from typing import List, Dict, Optional

from openai import AsyncOpenAI, APIConnectionError, APITimeoutError, RateLimitError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)
from dotenv import load_dotenv

from itinerary_agents.shared.exceptions import ConfigurationError

load_dotenv()

API_KEY_ENV = "OPENAI_API_KEY"

# Module-level cache for the OpenAI client
_client: Optional[AsyncOpenAI] = None


def has_api_key() -> bool:
    """Whether the OpenAI credential is configured."""
    return bool(os.environ.get(API_KEY_ENV))


def get_cached_client(timeout: float = 45.0) -> AsyncOpenAI:
    """
    Returns a cached instance of the async OpenAI client.

    Uses the OPENAI_API_KEY environment variable for authentication.
    The client is created once and reused for all subsequent calls.

    Raises:
        ConfigurationError: If the API key is not configured.
    """
    global _client
    if _client is None:
        api_key = os.environ.get(API_KEY_ENV)
        if not api_key:
            raise ConfigurationError(
                f"{API_KEY_ENV} environment variable is not set. "
                "Please set it to your OpenAI API key."
            )
        _client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
    return _client


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(
        (APITimeoutError, APIConnectionError, RateLimitError)
    ),
    reraise=True,
)
async def call_llm(
    messages: List[Dict[str, str]],
    model: str = "gpt-4.1-mini",
    client: Optional[AsyncOpenAI] = None,
    temperature: float = 0.5,
    max_tokens: int = 3000,
) -> str:
    """
    Call the OpenAI Chat Completion API with automatic retries.

    Only transient failures (timeouts, connection errors, rate limits)
    are retried; everything else surfaces on the first attempt.

    Args:
        messages: List of message dicts with 'role' and 'content' keys
        model: Model identifier to use (default: gpt-4.1-mini)
        client: Optional client instance. If not provided, uses cached client.
        temperature: Sampling temperature
        max_tokens: Completion token cap

    Returns:
        The assistant's response content as a string.
    """
    if client is None:
        client = get_cached_client()

    response = await client.chat.completions.create(
        model=model,
        messages=messages,
        temperature=temperature,
        max_tokens=max_tokens,
    )

    return (response.choices[0].message.content or "").strip()
