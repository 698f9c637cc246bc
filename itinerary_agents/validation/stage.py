"""
Validation stage.

Checks each discovered candidate against an authoritative place
validator and, when a concrete date and time are known, whether the
place is open then. Failures are data: every candidate gets a
ValidationResult and one candidate's error never aborts the batch.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol

from itinerary_agents.shared.contracts.discovery import DiscoveryCandidate
from itinerary_agents.shared.contracts.validation import (
    AvailabilityCheck,
    PlaceLookup,
    SchedulingContext,
    ValidatedPlace,
    ValidationResult,
)
from itinerary_agents.shared.exceptions import ConfigurationError
from itinerary_agents.shared.resilience import call_with_retry


logger = logging.getLogger(__name__)

UNVALIDATED_CONFIDENCE = 0.5


class PlaceValidator(Protocol):
    """Authoritative place lookup (e.g. a places API client)."""

    async def validate(
        self,
        candidate: DiscoveryCandidate,
        city: str,
        scheduling: SchedulingContext,
    ) -> PlaceLookup:
        ...

    async def check_availability(
        self,
        place: ValidatedPlace,
        when: datetime,
    ) -> AvailabilityCheck:
        ...


@dataclass
class ValidationConfig:
    """
    Bounded-wait settings for validator calls.

    Attributes:
        lookup_timeout: Seconds to wait for one validator call
        lookup_retries: Attempts per call (timeouts and service errors only)
        retry_min_wait: Lower backoff bound in seconds
        retry_max_wait: Upper backoff bound in seconds
    """

    lookup_timeout: float = 15.0
    lookup_retries: int = 2
    retry_min_wait: float = 1.0
    retry_max_wait: float = 8.0


DEFAULT_VALIDATION_CONFIG = ValidationConfig()


class ValidationStage:
    """
    Runs candidates through the place validator.

    Without a validator every candidate passes with confidence 0.5 and
    status ``unvalidated``.
    """

    def __init__(
        self,
        validator: Optional[PlaceValidator] = None,
        config: ValidationConfig = DEFAULT_VALIDATION_CONFIG,
    ):
        self.validator = validator
        self.config = config

    @property
    def available(self) -> bool:
        return self.validator is not None

    async def _call(self, func, *args):
        return await call_with_retry(
            func,
            *args,
            timeout=self.config.lookup_timeout,
            attempts=self.config.lookup_retries,
            min_wait=self.config.retry_min_wait,
            max_wait=self.config.retry_max_wait,
        )

    async def validate(
        self,
        candidates: List[DiscoveryCandidate],
        city: str,
        scheduling: Optional[SchedulingContext] = None,
    ) -> List[ValidationResult]:
        """
        Validate a batch of candidates.

        Args:
            candidates: Candidates from one discovery attempt
            city: City the candidates should be in
            scheduling: Date/time the slot is planned for

        Returns:
            One ValidationResult per candidate, in input order
        """
        scheduling = scheduling or SchedulingContext()
        _log = f"[run={scheduling.run_id or 'unknown'}] [graph=feedback_loop] [node=validate] "

        if self.validator is None:
            logger.warning(f"{_log}No place validator configured, skipping validation")
            return [
                ValidationResult(
                    candidate=candidate,
                    valid=True,
                    confidence=UNVALIDATED_CONFIDENCE,
                    status="unvalidated",
                    place=ValidatedPlace.from_candidate(candidate),
                    reason="Place validator unavailable",
                )
                for candidate in candidates
            ]

        results = []
        for candidate in candidates:
            results.append(await self._validate_one(candidate, city, scheduling, _log))

        valid_count = sum(1 for r in results if r.valid)
        logger.info(f"{_log}Validated {valid_count}/{len(results)} candidates")
        return results

    async def _validate_one(
        self,
        candidate: DiscoveryCandidate,
        city: str,
        scheduling: SchedulingContext,
        _log: str,
    ) -> ValidationResult:
        try:
            lookup: PlaceLookup = await self._call(
                self.validator.validate, candidate, city, scheduling
            )

            if not lookup.valid:
                logger.debug(f"{_log}Invalid: {candidate.name} ({lookup.reason})")
                return ValidationResult(
                    candidate=candidate,
                    valid=False,
                    confidence=lookup.confidence,
                    status=lookup.status or "invalid",
                    reason=lookup.reason,
                )

            place = ValidatedPlace.from_candidate(candidate, lookup.place)

            availability = None
            when = scheduling.scheduled_datetime()
            if when is not None:
                availability = await self._call(
                    self.validator.check_availability, place, when
                )

            return ValidationResult(
                candidate=candidate,
                valid=True,
                confidence=lookup.confidence,
                status=lookup.status or "validated",
                place=place,
                availability=availability,
                reason=lookup.reason,
            )

        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"{_log}Validation error for {candidate.name}: {e}")
            return ValidationResult(
                candidate=candidate,
                valid=False,
                confidence=0.0,
                status="error",
                reason=str(e),
            )
