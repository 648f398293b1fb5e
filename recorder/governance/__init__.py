"""Governance Module

RACI accountability, the authority chain, and reason codes.
"""

from .raci import (
    AUTHORITY_ACTIONS,
    SIGNOFF_ACTIONS,
    RACIAssignment,
    default_raci,
    extract_authority_chain,
    find_upstream_approval,
    missing_roles,
    raci_coverage
)

from .reason_codes import (
    REASON_CODES,
    validate_reason_code,
    get_reason_code_info
)

__all__ = [
    "AUTHORITY_ACTIONS",
    "SIGNOFF_ACTIONS",
    "RACIAssignment",
    "default_raci",
    "extract_authority_chain",
    "find_upstream_approval",
    "missing_roles",
    "raci_coverage",
    "REASON_CODES",
    "validate_reason_code",
    "get_reason_code_info"
]
