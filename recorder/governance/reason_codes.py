"""Reason Codes - Governance Event Classification

Standardized reason codes attached to governance log entries.
"""

from typing import Optional

from config.constants import (
    RC001_FACTUAL_ERROR,
    RC003_SAFETY_CONCERN,
    RC006_CONTEXT_MISSING,
    RC009_TIMING_ERROR,
)


REASON_CODES = {
    RC001_FACTUAL_ERROR: {
        "code": "RC001",
        "category": "perception",
        "description": "Perceived state contradicts reference data",
        "severity": "WARN"
    },
    RC003_SAFETY_CONCERN: {
        "code": "RC003",
        "category": "safety",
        "description": "Action would breach a safety constraint",
        "severity": "CRITICAL"
    },
    RC006_CONTEXT_MISSING: {
        "code": "RC006",
        "category": "perception",
        "description": "Sensor context insufficient for an autonomous decision",
        "severity": "WARN"
    },
    RC009_TIMING_ERROR: {
        "code": "RC009",
        "category": "integrity",
        "description": "Record timing inconsistent with ledger order",
        "severity": "CRITICAL"
    },
}


def validate_reason_code(reason_code: Optional[str]) -> bool:
    """Check a reason code against the catalogue. None is allowed."""
    return reason_code is None or reason_code in REASON_CODES


def get_reason_code_info(reason_code: str) -> dict:
    """Catalogue entry for a reason code.

    Raises:
        ValueError: If the code is unknown
    """
    if reason_code not in REASON_CODES:
        raise ValueError(f"Unknown reason code '{reason_code}'")
    return {"reason_code": reason_code, **REASON_CODES[reason_code]}
