"""
Configuration for the discovery feedback loop.

Centralizes the loop's bounds so they can be tuned without modifying
the graph wiring.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class FeedbackLoopConfig:
    """
    Configuration for the discover-validate-select loop.

    Attributes:
        max_attempts: Discovery rounds before giving up with a fallback
        recursion_limit: Minimum LangGraph step limit (raised automatically
            to fit ``max_attempts``)
        city_scoped_negative_cache: Key invalid places by city and name
    """

    max_attempts: int = 3
    recursion_limit: int = 30
    city_scoped_negative_cache: bool = False

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")


# Default configuration instance
DEFAULT_CONFIG = FeedbackLoopConfig()

# Graph steps one attempt can take (discover, validate, feedback/select, failure)
STEPS_PER_ATTEMPT = 4


def get_config(
    max_attempts: Optional[int] = None,
    recursion_limit: Optional[int] = None,
    city_scoped_negative_cache: Optional[bool] = None,
) -> FeedbackLoopConfig:
    """
    Create a configuration with optional overrides.

    Returns:
        FeedbackLoopConfig with specified overrides applied
    """
    return FeedbackLoopConfig(
        max_attempts=max_attempts if max_attempts is not None else DEFAULT_CONFIG.max_attempts,
        recursion_limit=recursion_limit or DEFAULT_CONFIG.recursion_limit,
        city_scoped_negative_cache=city_scoped_negative_cache
        if city_scoped_negative_cache is not None
        else DEFAULT_CONFIG.city_scoped_negative_cache,
    )


def recursion_limit_for(config: FeedbackLoopConfig, max_attempts: int) -> int:
    """Step limit large enough for ``max_attempts`` full rounds."""
    return max(config.recursion_limit, max_attempts * STEPS_PER_ATTEMPT + 2)
