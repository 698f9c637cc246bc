"""
LLM-backed knowledge source.

Asks an OpenAI chat model for candidate places matching a discovery
strategy and parses the JSON it returns.
"""

import asyncio
import logging
from typing import List

from openai import AuthenticationError, OpenAIError, PermissionDeniedError

from itinerary_agents.discovery.config import DEFAULT_CONFIG, DiscoveryConfig
from itinerary_agents.discovery.parser import ParseError, parse_candidates
from itinerary_agents.discovery.prompts import build_discovery_messages
from itinerary_agents.shared.contracts.discovery import (
    DiscoveryCandidate,
    DiscoveryRequest,
    DiscoveryStrategy,
)
from itinerary_agents.shared.exceptions import ConfigurationError, ExternalServiceError
from itinerary_agents.shared.llm.client import call_llm, get_cached_client
from itinerary_agents.shared.resilience import call_with_retry


logger = logging.getLogger(__name__)


class LLMKnowledgeSource:
    """
    Knowledge source that generates candidates with an LLM.

    Unreachable service and unparseable output both yield ``[]``.
    A missing or rejected API key raises ConfigurationError.
    """

    def __init__(self, config: DiscoveryConfig = DEFAULT_CONFIG, travel_style: str = "best-overall"):
        self.config = config
        self.travel_style = travel_style

    def preflight(self) -> None:
        """Raise ConfigurationError when the API key is missing."""
        get_cached_client(timeout=self.config.llm_timeout)

    async def discover(
        self,
        request: DiscoveryRequest,
        strategy: DiscoveryStrategy,
    ) -> List[DiscoveryCandidate]:
        # Raises ConfigurationError before any network traffic
        client = get_cached_client(timeout=self.config.llm_timeout)

        messages = build_discovery_messages(
            request,
            strategy,
            self.travel_style,
            max_candidates=self.config.max_candidates,
            avoidance_limit=self.config.avoidance_prompt_limit,
        )

        try:
            raw_response = await call_with_retry(
                call_llm,
                messages,
                model=self.config.model,
                client=client,
                temperature=self.config.temperature,
                timeout=self.config.llm_timeout,
                attempts=self.config.max_retries,
                min_wait=self.config.retry_min_wait,
                max_wait=self.config.retry_max_wait,
            )
        except (AuthenticationError, PermissionDeniedError) as e:
            raise ConfigurationError(f"OpenAI rejected the configured credentials: {e}") from e
        except (OpenAIError, ExternalServiceError, asyncio.TimeoutError) as e:
            logger.error(f"Knowledge source unavailable for {request.city}: {e}")
            return []

        try:
            return parse_candidates(raw_response, city=request.city, source="llm")
        except ParseError as e:
            logger.warning(f"Unparseable candidates for {request.city}: {e}")
            logger.debug(f"Raw response: {raw_response[:500]}")
            return []
