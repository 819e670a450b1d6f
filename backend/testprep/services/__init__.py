"""Mock Test Platform - Services initialization."""
from testprep.services.attempt import (
    AttemptService,
    AttemptError,
    NotFoundError,
    AttemptClosedError,
    AttemptConflictError,
    AnswerValidationError,
    StoreError,
    SubmissionResult,
)
from testprep.services.catalog import CatalogService
from testprep.services.timer import AttemptTimer

__all__ = [
    "AttemptService",
    "AttemptError",
    "NotFoundError",
    "AttemptClosedError",
    "AttemptConflictError",
    "AnswerValidationError",
    "StoreError",
    "SubmissionResult",
    "CatalogService",
    "AttemptTimer",
]
