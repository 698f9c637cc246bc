"""
Configuration for the discovery agent.

Centralizes the knobs of candidate acquisition so they can be tuned
without touching the agent wiring.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class DiscoveryConfig:
    """
    Configuration for candidate discovery.

    Attributes:
        model: LLM model used by the LLM knowledge source
        llm_timeout: Per-call timeout in seconds
        max_retries: Attempts per knowledge-source call (timeouts only)
        retry_min_wait: Lower backoff bound in seconds
        retry_max_wait: Upper backoff bound in seconds
        temperature: Sampling temperature for candidate generation
        max_candidates: Candidates kept from one discovery call
        avoidance_prompt_limit: Avoidance entries rendered into a prompt
    """

    model: str = "gpt-4.1-mini"
    llm_timeout: int = 45
    max_retries: int = 2
    retry_min_wait: int = 2
    retry_max_wait: int = 10
    temperature: float = 0.5
    max_candidates: int = 5
    avoidance_prompt_limit: int = 10


# Default configuration instance
DEFAULT_CONFIG = DiscoveryConfig()


def get_config(
    model: Optional[str] = None,
    llm_timeout: Optional[int] = None,
    max_retries: Optional[int] = None,
    max_candidates: Optional[int] = None,
) -> DiscoveryConfig:
    """
    Create a configuration with optional overrides.

    Returns:
        DiscoveryConfig with specified overrides applied
    """
    return DiscoveryConfig(
        model=model or DEFAULT_CONFIG.model,
        llm_timeout=llm_timeout or DEFAULT_CONFIG.llm_timeout,
        max_retries=max_retries or DEFAULT_CONFIG.max_retries,
        max_candidates=max_candidates or DEFAULT_CONFIG.max_candidates,
    )
