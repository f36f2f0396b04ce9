"""
Error taxonomy for the optimistic cache layer.

Defines hierarchical exceptions with standardized attributes so callers can
tell a version conflict apart from a generic store failure.

Each error class implements:
- code: String identifier for the error type
- message: Human-readable description
- context: Dict containing additional contextual information
- retry_hint: Boolean indicating if retry might succeed
"""
from __future__ import annotations
from typing import Any


class OptimisticCacheError(Exception):
    """Base exception for all optimistic cache errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "UNKNOWN_ERROR",
        context: dict[str, Any] | None = None,
        retry_hint: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.context = dict(context) if context else {}
        self.retry_hint = retry_hint

    def to_dict(self) -> dict[str, Any]:
        """Serialize to structured dict."""
        return {
            "code": self.code,
            "message": self.message,
            "context": dict(self.context),
            "retry_hint": self.retry_hint,
        }


class VersionConflictError(OptimisticCacheError):
    """Expected version did not match the stored version.

    Recoverable: the user refreshes to the latest row and retries.
    """

    def __init__(
        self,
        expected_version: int,
        actual_version: int,
        server_data: dict[str, Any] | None,
        *,
        code: str = "VERSION_CONFLICT",
        context: dict[str, Any] | None = None,
        retry_hint: bool = True,
    ) -> None:
        ctx = dict(context) if context else {}
        ctx["expected_version"] = expected_version
        ctx["actual_version"] = actual_version
        super().__init__(
            f"Version conflict: expected version {expected_version} but found {actual_version}",
            code=code,
            context=ctx,
            retry_hint=retry_hint,
        )
        self.expected_version = expected_version
        self.actual_version = actual_version
        self.server_data = server_data


class StoreError(OptimisticCacheError):
    """Row store failure that is not a version conflict (validation, permission, connectivity)."""

    def __init__(
        self,
        message: str,
        *,
        provider: str = "unknown",
        code: str = "STORE_ERROR",
        context: dict[str, Any] | None = None,
        retry_hint: bool = True,
    ) -> None:
        ctx = dict(context) if context else {}
        ctx["provider"] = provider
        super().__init__(message, code=code, context=ctx, retry_hint=retry_hint)


class PreconditionError(OptimisticCacheError):
    """Malformed update input, rejected before any network call."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "PRECONDITION_FAILED",
        context: dict[str, Any] | None = None,
        retry_hint: bool = False,
    ) -> None:
        super().__init__(message, code=code, context=context, retry_hint=retry_hint)


class ConfigurationError(OptimisticCacheError):
    """Missing or invalid configuration."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "CONFIGURATION_ERROR",
        context: dict[str, Any] | None = None,
        retry_hint: bool = False,
    ) -> None:
        super().__init__(message, code=code, context=context, retry_hint=retry_hint)
