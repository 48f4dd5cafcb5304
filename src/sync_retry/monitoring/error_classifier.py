"""
Failure classification for dead letter triage.

Maps a sync failure message to a category, severity and suggested operator
action using case-insensitive substring patterns. Rules are checked in
order; the first match wins. Classification is informational only and does
not influence retry decisions.
"""

from typing import Optional

from sync_retry.models.results import ErrorClassification

CLASSIFICATION_RULES: list[tuple[ErrorClassification, tuple[str, ...]]] = [
    (
        ErrorClassification(
            category="auth",
            severity="critical",
            retriable=False,
            suggested_action="Check API credentials and refresh authentication tokens for the target system.",
        ),
        ("unauthorized", "401", "token expired", "authentication"),
    ),
    (
        ErrorClassification(
            category="network",
            severity="warning",
            retriable=True,
            suggested_action="Verify network connectivity and that the external system is reachable.",
        ),
        ("econnrefused", "timeout", "timed out", "etimedout", "network", "enotfound", "connection"),
    ),
    (
        ErrorClassification(
            category="validation",
            severity="warning",
            retriable=False,
            suggested_action="Review the payload against the target system schema and fix validation errors.",
        ),
        ("required field", "invalid", "constraint", "schema"),
    ),
    (
        ErrorClassification(
            category="rate_limit",
            severity="warning",
            retriable=True,
            suggested_action="Wait for the rate limit window to reset before retrying. Consider reducing sync frequency.",
        ),
        ("rate limit", "429", "too many requests"),
    ),
    (
        ErrorClassification(
            category="data",
            severity="info",
            retriable=False,
            suggested_action="Check that referenced entities exist and data integrity constraints are satisfied.",
        ),
        ("not found", "duplicate", "foreign key", "null value"),
    ),
]

UNKNOWN_CLASSIFICATION = ErrorClassification(
    category="unknown",
    severity="warning",
    retriable=True,
    suggested_action="Investigate the error message manually. No automatic classification matched.",
)


def classify_error(error_message: Optional[str]) -> ErrorClassification:
    """
    Classify a failure message.

    Args:
        error_message: Accumulated error text of a sync log entry

    Returns:
        First matching ErrorClassification, or the "unknown" classification
    """
    if not error_message:
        return UNKNOWN_CLASSIFICATION

    lower = error_message.lower()
    for classification, patterns in CLASSIFICATION_RULES:
        if any(pattern in lower for pattern in patterns):
            return classification
    return UNKNOWN_CLASSIFICATION
