"""
============================================================================
Dynamic Frame Pricing v1.0.0
Security Module - Cleanup Trigger Verification
============================================================================

Reliability Level: L5 Critical
Input Constraints: X-Cron-Secret header value
Side Effects: None (pure verification)

MANDATE:
- The cleanup endpoint runs only for callers presenting CRON_SECRET
- Timing-safe comparison
- No silent failures - explicit error codes

============================================================================
"""

import hmac
from typing import Optional


# ============================================================================
# CONSTANTS
# ============================================================================

CRON_SECRET_HEADER = "X-Cron-Secret"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class CronSecretError(Exception):
    """
    Raised when the cleanup trigger cannot be verified.

    Error Codes:
        SEC-001: Missing secret header
        SEC-002: Server secret not configured
        SEC-003: Secret mismatch
    """

    def __init__(self, error_code: str, message: str):
        self.error_code = error_code
        self.message = message
        super().__init__(f"[{error_code}] {message}")


# ============================================================================
# VERIFICATION
# ============================================================================

def verify_cron_secret(provided: Optional[str], expected: Optional[str]) -> bool:
    """
    Verify the cleanup trigger's shared secret.

    Returns:
        bool: True if the secret matches

    Raises:
        CronSecretError: With a specific error code on any failure
    """
    if not expected:
        raise CronSecretError(
            "SEC-002",
            "CRON_SECRET is not configured; cleanup trigger disabled."
        )

    if not provided:
        raise CronSecretError(
            "SEC-001",
            f"Missing {CRON_SECRET_HEADER} header."
        )

    if not hmac.compare_digest(provided.strip().encode("utf-8"), expected.encode("utf-8")):
        raise CronSecretError("SEC-003", "Cron secret mismatch.")

    return True
