"""Shared error code mapping for RIPS generation and bundle export failures."""
from typing import Any, Iterable

RIPS_ERROR_CODE_INPUT = "RIPS_INPUT_INVALID"
RIPS_ERROR_CODE_VALIDATION = "RIPS_VALIDATION_FAILED"
RIPS_ERROR_CODE_NO_PATIENTS = "RIPS_NO_PATIENTS"
RIPS_ERROR_CODE_GENERIC = "RIPS_GENERATION_FAILED"
FHIR_ERROR_CODE_NOT_FOUND = "FHIR_NOT_FOUND"
FHIR_ERROR_CODE_VALIDATION = "FHIR_VALIDATION_FAILED"
FHIR_ERROR_CODE_GENERIC = "FHIR_EXPORT_FAILED"

_RULE_PREFIXES = ("RVG01", "RVG03", "RVG07")


def classify_rips_error_code(errors: Iterable[str]) -> str:
    """Classify a list of RIPS error messages into a stable error code."""
    messages = [message for message in errors if message]
    if not messages:
        return RIPS_ERROR_CODE_GENERIC
    lowered = [message.lower() for message in messages]
    if any(message.startswith(_RULE_PREFIXES) for message in messages):
        return RIPS_ERROR_CODE_VALIDATION
    if any("invalid input" in message or "se requiere" in message for message in lowered):
        return RIPS_ERROR_CODE_INPUT
    return RIPS_ERROR_CODE_GENERIC


def build_error_payload(
    code: str,
    message: str,
    details: str | None = None,
) -> dict[str, Any]:
    """Build standardized error metadata, omitting empty optional fields."""
    payload: dict[str, Any] = {"code": code, "message": message}
    if details:
        payload["details"] = details
    return payload
