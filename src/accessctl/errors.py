"""
Exception hierarchy for accessctl.

All accessctl exceptions inherit from AccessControlError, allowing callers
to catch every accessctl-specific exception with a single except clause.

The evaluator never raises: a query that matches nothing is a denial, not
an error. These exceptions belong to the surfaces around it.

Exception Categories:
    - PolicyLoadError: Policy file missing, malformed, or invalid
    - ConfigLoadError: Resource registry file missing, malformed, or invalid
    - PolicyValidationError: Policy names resources/actions the registry lacks
    - ContextParseError: Attribute context arguments could not be parsed
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Load errors: 1xxx
ERROR_POLICY_LOAD = 1001
ERROR_CONFIG_LOAD = 1002

# Validation errors: 2xxx
ERROR_POLICY_VALIDATION = 2001

# Context errors: 3xxx
ERROR_CONTEXT_PARSE = 3001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class AccessControlError(Exception):
    """
    Base exception for all accessctl errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Load Errors
# =============================================================================


@dataclass
class PolicyLoadError(AccessControlError):
    """Raised when a policy file cannot be read or validated."""

    path: str = ""
    detail: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Cannot load policy {self.path}: {self.detail}"
        if self.code == 0:
            self.code = ERROR_POLICY_LOAD
        self.context.update({"path": self.path, "detail": self.detail})


@dataclass
class ConfigLoadError(AccessControlError):
    """Raised when a resource registry file cannot be read or validated."""

    path: str = ""
    detail: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Cannot load resource registry {self.path}: {self.detail}"
        if self.code == 0:
            self.code = ERROR_CONFIG_LOAD
        self.context.update({"path": self.path, "detail": self.detail})


# =============================================================================
# Validation Errors
# =============================================================================


@dataclass
class PolicyValidationError(AccessControlError):
    """
    Raised when a policy references resources or actions that the
    resource registry does not declare.

    Attributes:
        issues: One message per offending statement entry
    """

    issues: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            count = len(self.issues)
            noun = "issue" if count == 1 else "issues"
            self.message = f"Policy does not match resource registry ({count} {noun})"
        if self.code == 0:
            self.code = ERROR_POLICY_VALIDATION
        if not self.suggestion:
            self.suggestion = "Fix the statement or declare the resource/action in the registry"
        self.context["issues"] = list(self.issues)


# =============================================================================
# Context Errors
# =============================================================================


@dataclass
class ContextParseError(AccessControlError):
    """Raised when attribute context input is not a mapping or key=value pair."""

    raw: str = ""
    detail: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid context {self.raw!r}: {self.detail}"
        if self.code == 0:
            self.code = ERROR_CONTEXT_PARSE
        if not self.suggestion:
            self.suggestion = 'Use key=value or a JSON object such as {"userId": "u"}'
        self.context.update({"raw": self.raw, "detail": self.detail})
