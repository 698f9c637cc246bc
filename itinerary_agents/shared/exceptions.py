"""
Shared exceptions for the itinerary agents.

Validation failures are not exceptions: they travel as data
(ValidationResult.valid = False) and drive the feedback loop.
"""


class ConfigurationError(ValueError):
    """Required configuration (credentials, graph wiring) is missing or invalid."""


class GraphDefinitionError(ConfigurationError):
    """An execution graph declaration is inconsistent."""


class ExternalServiceError(Exception):
    """An external collaborator failed after its retry budget."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"[{service}] {message}")


class DuplicateJobError(ValueError):
    """A job with the same id is still pending or processing."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} is already queued or running")
