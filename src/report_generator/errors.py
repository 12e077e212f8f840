"""
Failure taxonomy for report generation.

Every failure of `ReportGenerator.generate_report` surfaces as a subclass of
`ReportGenerationError`, whose `kind` tells the caller what to do next:

- `CREDENTIAL_MISSING`: ask the user to (re)select an API key, then let them retry.
- `MALFORMED_RESPONSE`: the model answered with something that is not a report.
- `GENERATION_FAILED`: any other provider or network failure.
"""

from enum import Enum
from typing import Optional

from .. import constants
from .utils.localization import get_label


class ErrorKind(str, Enum):
    CREDENTIAL_MISSING = "CREDENTIAL_MISSING"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    GENERATION_FAILED = "GENERATION_FAILED"


class ReportGenerationError(Exception):
    """Base class for all report generation failures."""

    kind: ErrorKind = ErrorKind.GENERATION_FAILED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


class CredentialMissingError(ReportGenerationError):
    """No usable, billing-enabled API key is selected."""

    kind = ErrorKind.CREDENTIAL_MISSING


class MalformedResponseError(ReportGenerationError):
    """The model's output was empty, not JSON, or missing required keys."""

    kind = ErrorKind.MALFORMED_RESPONSE


class GenerationFailedError(ReportGenerationError):
    """Any other provider, quota, or network failure."""

    kind = ErrorKind.GENERATION_FAILED


def is_credential_error(message: Optional[str]) -> bool:
    """True when a provider error message carries the missing-key signature."""
    if not message:
        return False
    lowered = message.lower()
    return any(sig in lowered for sig in constants.CREDENTIAL_ERROR_SIGNATURES)


def classify_provider_error(
    exc: BaseException, language: Optional[str] = None
) -> ReportGenerationError:
    """
    Maps an exception raised by the LLM call to the report error taxonomy.

    Args:
        exc: The exception raised while invoking the provider.
        language: The report language, used for the generic fallback message.

    Returns:
        A `CredentialMissingError` if the message matches the missing-key
        signature, otherwise a `GenerationFailedError` carrying the original
        message (or a localized generic message when there is none).
    """
    if isinstance(exc, ReportGenerationError):
        return exc

    message = str(exc).strip()
    if is_credential_error(message):
        return CredentialMissingError(get_label(language, "credential_missing"))
    return GenerationFailedError(message or get_label(language, "generation_failed"))
