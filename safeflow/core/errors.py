"""
Error Classification

Every failure carries enough structured detail (status code, revert reason
or raw bytes, expected vs. actual addresses) to diagnose without re-running.
None of these errors are retried.
"""

from typing import Any, Dict, Optional


class SafeflowError(Exception):
    """Base class for all orchestration errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(SafeflowError):
    """Missing or unknown configuration (e.g. unregistered network id)."""
    pass


class ShapeError(SafeflowError):
    """Mismatched list lengths or malformed batch input."""
    pass


class SigningError(SafeflowError):
    """External signer process failed."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message, {"returncode": returncode, "stderr": stderr})
        self.returncode = returncode
        self.stderr = stderr


class SimulationRejected(SafeflowError):
    """A simulated attempt reverted or was rejected by the verifier."""

    def __init__(self, outcome: Any, digest: Optional[str] = None):
        describe = getattr(outcome, "describe", None)
        reason = describe() if callable(describe) else str(outcome)
        super().__init__(
            f"Simulation failed: {reason}",
            {"outcome": type(outcome).__name__, "digest": digest},
        )
        self.outcome = outcome
        self.digest = digest


class ProposalRejected(SafeflowError):
    """Coordination service answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(
            f"Proposal rejected with HTTP {status_code}: {body}",
            {"status_code": status_code, "body": body},
        )
        self.status_code = status_code
        self.body = body


class VerificationFailed(SafeflowError):
    """Expected deployment produced no code after a successful execution."""

    def __init__(self, expected_address: str, reason: str):
        super().__init__(
            f"No code at {expected_address} after execution: {reason}",
            {"expected_address": expected_address},
        )
        self.expected_address = expected_address
        self.reason = reason
