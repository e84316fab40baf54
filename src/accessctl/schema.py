"""
Schema definitions for accessctl.

This module defines the Pydantic models used throughout accessctl:
- Statement/Policy: Which actions on which resources are allowed or denied
- AccessDecision: An explained result of evaluating a query
- AccessControlConfig: The registry of known resources and their actions

Design Decisions:
    - Statements and policies are immutable (frozen=True)
    - Unknown keys are rejected (extra="forbid")
    - A policy file may be a bare list of statements or a mapping
      with a "statements" key
"""

import logging
from collections.abc import Iterable, Mapping
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from accessctl.errors import ConfigLoadError, PolicyLoadError, PolicyValidationError

if TYPE_CHECKING:
    from accessctl.policy import AccessControl

logger = logging.getLogger(__name__)

WILDCARD = "*"

# Action entries accepted for any resource by registry validation.
_ALWAYS_VALID_ACTIONS = frozenset({WILDCARD, ""})


# =============================================================================
# Enums
# =============================================================================


class Effect(str, Enum):
    """The outcome a statement asserts when it matches."""

    ALLOW = "allow"
    DENY = "deny"


# =============================================================================
# Policy Models
# =============================================================================


class Statement(BaseModel):
    """
    A single permission rule.

    Attributes:
        resource: The resource this statement applies to
        actions: Action names covered by this statement ("*" covers all)
        effect: Whether a match allows or denies
        contexts: Attribute maps; the statement applies when ANY of them
            matches an input context. Empty means unconditional.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    resource: str = Field(..., description="Resource this statement applies to")
    actions: frozenset[str] = Field(
        default_factory=frozenset,
        description="Actions allowed or denied; may include '*'",
    )
    effect: Effect = Field(..., description="allow or deny")
    contexts: tuple[dict[str, Any], ...] = Field(
        default=(),
        description="Attribute maps for ABAC conditions (OR logic)",
    )

    @model_validator(mode="before")
    @classmethod
    def _contexts_none_is_empty(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("contexts") is None:
            data = {k: v for k, v in data.items() if k != "contexts"}
        return data

    def covers_action(self, action: str) -> bool:
        """Check whether this statement names the action or the wildcard."""
        if WILDCARD in self.actions:
            return True
        try:
            return action in self.actions
        except TypeError:
            # unhashable action names match nothing
            return False


class Policy(BaseModel):
    """
    An ordered collection of statements evaluated together.

    Statement order is kept for display but never affects a decision.

    Attributes:
        version: Schema version for forward compatibility
        statements: The permission statements
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str = Field(default="1.0", description="Policy schema version")
    statements: tuple[Statement, ...] = Field(
        default=(),
        description="Permission statements",
    )

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_list(cls, data: Any) -> Any:
        if data is None:
            return {}
        if isinstance(data, (list, tuple)):
            return {"statements": data}
        return data

    @property
    def resources(self) -> list[str]:
        """Resources referenced by this policy, in first-seen order."""
        seen: dict[str, None] = {}
        for stmt in self.statements:
            seen.setdefault(stmt.resource, None)
        return list(seen)


# A Policy, any iterable of Statements or statement mappings, or None.
PolicyInput = Union[Policy, Iterable[Union[Statement, Mapping[str, Any]]], None]


def coerce_policy(policy: PolicyInput) -> Policy:
    """Wrap statement sequences (or None) in a Policy; pass a Policy through."""
    if policy is None:
        return Policy()
    if isinstance(policy, Policy):
        return policy
    return Policy(statements=tuple(policy))


# =============================================================================
# Runtime Models
# =============================================================================


class AccessDecision(BaseModel):
    """
    Explained result of evaluating one query against a policy.

    Attributes:
        allowed: Whether the action is permitted
        reason: Human-readable explanation of the decision
        effect: Effect that won at the highest specificity (None if no match)
        specificity: Highest specificity among matches (None if no match)
        candidates: Number of matching statement/context pairs
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed: bool = Field(..., description="Whether the action is permitted")
    reason: str = Field(..., description="Human-readable explanation")
    effect: Effect | None = Field(default=None, description="Winning effect")
    specificity: int | None = Field(
        default=None,
        description="Highest matched specificity",
        ge=0,
    )
    candidates: int = Field(default=0, description="Number of matches", ge=0)

    @classmethod
    def no_match(cls) -> "AccessDecision":
        """Create the default-deny decision."""
        return cls(allowed=False, reason="No matching statement (deny by default)")


# =============================================================================
# Resource Registry
# =============================================================================


class AccessControlConfig(BaseModel):
    """
    Registry of known resources and the actions each one supports.

    The evaluator never consults the registry. It exists so that policy
    authors can catch typos in resource and action names before a policy
    is bound.

    Usage:
        config = AccessControlConfig(resources={"POST": ["read", "update"]})
        access = config.bind(policy)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    resources: dict[str, tuple[str, ...]] = Field(
        default_factory=dict,
        description="Resource name -> supported action names",
    )

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_mapping(cls, data: Any) -> Any:
        if data is None:
            return {}
        # A resource may itself be named "resources"; only a nested mapping is the wrapper
        if isinstance(data, dict) and not isinstance(data.get("resources"), dict):
            return {"resources": data}
        return data

    def validate_policy(self, policy: PolicyInput) -> list[str]:
        """
        List every resource or action the policy uses but the registry lacks.

        Returns:
            Human-readable issues, empty when the policy is consistent
        """
        issues: list[str] = []
        for index, stmt in enumerate(coerce_policy(policy).statements):
            known = self.resources.get(stmt.resource)
            if known is None:
                issues.append(f"statements[{index}]: unknown resource {stmt.resource!r}")
                continue
            for action in sorted(stmt.actions - _ALWAYS_VALID_ACTIONS):
                if action not in known:
                    issues.append(
                        f"statements[{index}]: unknown action {action!r} "
                        f"for resource {stmt.resource!r}"
                    )
        return issues

    def check_policy(self, policy: PolicyInput) -> None:
        """Raise PolicyValidationError if the policy is inconsistent."""
        issues = self.validate_policy(policy)
        if issues:
            raise PolicyValidationError(issues=issues)

    def bind(self, policy: PolicyInput) -> "AccessControl":
        """Check the policy against this registry and bind it for evaluation."""
        from accessctl.policy import AccessControl

        policy = coerce_policy(policy)
        self.check_policy(policy)
        return AccessControl(policy)


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def _read_yaml(path: Path) -> Any:
    with path.open() as f:
        return yaml.safe_load(f)


def load_policy(path: Path | str) -> Policy:
    """
    Load a policy from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated Policy object

    Raises:
        PolicyLoadError: If the file is missing, unreadable, not YAML,
            or doesn't match the schema
    """
    path = Path(path)
    try:
        data = _read_yaml(path)
        policy = Policy.model_validate(data)
    except FileNotFoundError as e:
        raise PolicyLoadError(
            path=str(path),
            detail="file not found",
            suggestion="Check the policy path",
        ) from e
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise PolicyLoadError(path=str(path), detail=str(e)) from e

    logger.debug("Loaded policy %s with %d statements", path, len(policy.statements))
    return policy


def load_policy_from_string(content: str) -> Policy:
    """Load a policy from a YAML string."""
    try:
        data = yaml.safe_load(content)
        return Policy.model_validate(data)
    except (yaml.YAMLError, ValidationError) as e:
        raise PolicyLoadError(path="<string>", detail=str(e)) from e


def load_config(path: Path | str) -> AccessControlConfig:
    """
    Load a resource registry from a YAML file.

    Raises:
        ConfigLoadError: If the file is missing, unreadable, not YAML,
            or doesn't match the schema
    """
    path = Path(path)
    try:
        data = _read_yaml(path)
        config = AccessControlConfig.model_validate(data)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise ConfigLoadError(path=str(path), detail=str(e)) from e

    logger.debug("Loaded registry %s with %d resources", path, len(config.resources))
    return config


def load_config_from_string(content: str) -> AccessControlConfig:
    """Load a resource registry from a YAML string."""
    try:
        data = yaml.safe_load(content)
        return AccessControlConfig.model_validate(data)
    except (yaml.YAMLError, ValidationError) as e:
        raise ConfigLoadError(path="<string>", detail=str(e)) from e
