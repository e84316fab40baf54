"""
Unit tests for schema models and YAML loading.

Tests cover:
- Statement and Policy validation
- Bare-list and mapping policy formats
- AccessControlConfig registry validation and binding
- YAML loading helpers and their errors
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from accessctl.errors import ConfigLoadError, PolicyLoadError, PolicyValidationError
from accessctl.policy import AccessControl
from accessctl.schema import (
    AccessControlConfig,
    AccessDecision,
    Effect,
    Policy,
    Statement,
    load_config,
    load_config_from_string,
    load_policy,
    load_policy_from_string,
)


# =============================================================================
# Statement Tests
# =============================================================================


class TestStatement:
    """Tests for Statement model."""

    def test_minimal_statement(self) -> None:
        """Statement with resource, actions and effect."""
        stmt = Statement(resource="POST", actions=["read"], effect="allow")
        assert stmt.resource == "POST"
        assert stmt.actions == frozenset({"read"})
        assert stmt.effect == Effect.ALLOW
        assert stmt.contexts == ()

    def test_contexts_none_is_empty(self) -> None:
        """contexts: null means unconditional."""
        stmt = Statement.model_validate(
            {"resource": "POST", "actions": ["read"], "effect": "deny", "contexts": None}
        )
        assert stmt.contexts == ()

    def test_contexts_kept_in_order(self) -> None:
        """Contexts are stored as given."""
        stmt = Statement(
            resource="POST",
            actions=["read"],
            effect="allow",
            contexts=[{"a": 1}, {"b": 2}],
        )
        assert stmt.contexts == ({"a": 1}, {"b": 2})

    def test_invalid_effect_rejected(self) -> None:
        """Only allow and deny are valid effects."""
        with pytest.raises(ValidationError):
            Statement(resource="POST", actions=["read"], effect="maybe")

    def test_effect_required(self) -> None:
        """Effect has no default."""
        with pytest.raises(ValidationError):
            Statement(resource="POST", actions=["read"])  # type: ignore[call-arg]

    def test_extra_fields_rejected(self) -> None:
        """Unknown fields should be rejected."""
        with pytest.raises(ValidationError):
            Statement(resource="POST", actions=["read"], effect="allow", when="now")  # type: ignore[call-arg]

    def test_statement_is_immutable(self) -> None:
        """Statements should be immutable (frozen)."""
        stmt = Statement(resource="POST", actions=["read"], effect="allow")
        with pytest.raises(ValidationError):
            stmt.resource = "USER"  # type: ignore[misc]

    def test_covers_action(self) -> None:
        """covers_action honours names and the wildcard."""
        named = Statement(resource="POST", actions=["read"], effect="allow")
        wildcard = Statement(resource="POST", actions=["*"], effect="allow")
        assert named.covers_action("read") is True
        assert named.covers_action("delete") is False
        assert wildcard.covers_action("delete") is True


# =============================================================================
# Policy Tests
# =============================================================================


class TestPolicy:
    """Tests for Policy model."""

    def test_default_policy_is_empty(self) -> None:
        """Default policy has no statements."""
        policy = Policy()
        assert policy.version == "1.0"
        assert policy.statements == ()

    def test_bare_list_accepted(self) -> None:
        """A list validates as the statements of a policy."""
        policy = Policy.model_validate([{"resource": "POST", "actions": ["read"], "effect": "allow"}])
        assert len(policy.statements) == 1
        assert isinstance(policy.statements[0], Statement)

    def test_resources_in_first_seen_order(self) -> None:
        """resources lists each resource once."""
        policy = Policy.model_validate(
            [
                {"resource": "USER", "actions": ["read"], "effect": "allow"},
                {"resource": "POST", "actions": ["read"], "effect": "allow"},
                {"resource": "USER", "actions": ["invite"], "effect": "deny"},
            ]
        )
        assert policy.resources == ["USER", "POST"]

    def test_policy_is_immutable(self) -> None:
        """Policies should be immutable."""
        policy = Policy()
        with pytest.raises(ValidationError):
            policy.version = "2.0"  # type: ignore[misc]


class TestAccessDecision:
    """Tests for AccessDecision model."""

    def test_no_match(self) -> None:
        """no_match is a bare default deny."""
        decision = AccessDecision.no_match()
        assert decision.allowed is False
        assert decision.effect is None
        assert decision.specificity is None
        assert decision.candidates == 0

    def test_negative_specificity_rejected(self) -> None:
        """Specificity is never negative."""
        with pytest.raises(ValidationError):
            AccessDecision(allowed=True, reason="x", specificity=-1)


# =============================================================================
# Registry Tests
# =============================================================================


class TestAccessControlConfig:
    """Tests for the resource registry."""

    @pytest.fixture
    def config(self, sample_config_yaml: str) -> AccessControlConfig:
        return load_config_from_string(sample_config_yaml)

    def test_bare_mapping_accepted(self) -> None:
        """A mapping without 'resources' is the resource table itself."""
        config = AccessControlConfig.model_validate({"POST": ["read"]})
        assert config.resources == {"POST": ("read",)}

    def test_valid_policy_has_no_issues(self, config: AccessControlConfig, sample_policy_yaml: str) -> None:
        """The sample policy matches the sample registry."""
        policy = load_policy_from_string(sample_policy_yaml)
        assert config.validate_policy(policy) == []

    def test_unknown_resource_reported(self, config: AccessControlConfig) -> None:
        """Resources missing from the registry are reported."""
        policy = Policy.model_validate([{"resource": "COMMENT", "actions": ["read"], "effect": "allow"}])
        issues = config.validate_policy(policy)
        assert issues == ["statements[0]: unknown resource 'COMMENT'"]

    def test_unknown_action_reported(self, config: AccessControlConfig) -> None:
        """Actions missing from the registry are reported."""
        policy = Policy.model_validate(
            [{"resource": "POST", "actions": ["read", "publish", "*"], "effect": "allow"}]
        )
        issues = config.validate_policy(policy)
        assert issues == ["statements[0]: unknown action 'publish' for resource 'POST'"]

    def test_check_policy_raises(self, config: AccessControlConfig) -> None:
        """check_policy raises with every issue attached."""
        policy = Policy.model_validate(
            [
                {"resource": "COMMENT", "actions": ["read"], "effect": "allow"},
                {"resource": "USER", "actions": ["ban"], "effect": "deny"},
            ]
        )
        with pytest.raises(PolicyValidationError) as exc_info:
            config.check_policy(policy)
        assert len(exc_info.value.issues) == 2

    def test_bind_returns_access_control(self, config: AccessControlConfig, sample_policy_yaml: str) -> None:
        """bind checks then returns a working AccessControl."""
        access = config.bind(load_policy_from_string(sample_policy_yaml))
        assert isinstance(access, AccessControl)
        assert access.can("USER", "invite") is True

    def test_bind_rejects_inconsistent_policy(self, config: AccessControlConfig) -> None:
        """bind refuses policies the registry does not describe."""
        policy = Policy.model_validate([{"resource": "COMMENT", "actions": ["read"], "effect": "allow"}])
        with pytest.raises(PolicyValidationError):
            config.bind(policy)

    def test_bind_accepts_statement_list(self, config: AccessControlConfig) -> None:
        """bind and validate_policy take the same inputs as get_access_control."""
        statements = [
            {"resource": "POST", "actions": ["read"], "effect": "allow"},
            Statement(resource="USER", actions=["invite"], effect="allow"),
        ]
        assert config.validate_policy(statements) == []
        access = config.bind(statements)
        assert isinstance(access.policy, Policy)
        assert access.can("POST", "read") is True
        assert config.validate_policy(None) == []

    def test_resource_named_resources(self) -> None:
        """A bare-mapping resource may be called 'resources'."""
        config = AccessControlConfig.model_validate({"resources": ["read"], "POST": ["update"]})
        assert config.resources == {"resources": ("read",), "POST": ("update",)}

    def test_wrapped_resource_named_resources(self) -> None:
        """Under the wrapper key, 'resources' is an ordinary resource name."""
        config = load_config_from_string("resources:\n  resources: [read]\n")
        assert config.resources == {"resources": ("read",)}


# =============================================================================
# YAML Loading Tests
# =============================================================================


class TestYamlLoading:
    """Tests for YAML loading helpers."""

    def test_load_policy_from_string(self, sample_policy_yaml: str) -> None:
        """Mapping-form policy YAML loads."""
        policy = load_policy_from_string(sample_policy_yaml)
        assert len(policy.statements) == 4
        assert policy.statements[1].contexts == ({"status": "draft"},)

    def test_load_bare_list_policy(self, bare_list_policy_yaml: str) -> None:
        """List-form policy YAML loads."""
        policy = load_policy_from_string(bare_list_policy_yaml)
        assert len(policy.statements) == 1

    def test_load_empty_policy(self) -> None:
        """An empty document is an empty policy."""
        assert load_policy_from_string("").statements == ()

    def test_load_policy_file(self, policy_file: Path) -> None:
        """load_policy reads from disk."""
        policy = load_policy(policy_file)
        assert policy.resources == ["POST", "USER"]

    def test_load_policy_missing_file(self, temp_dir: Path) -> None:
        """A missing file raises PolicyLoadError with a suggestion."""
        with pytest.raises(PolicyLoadError) as exc_info:
            load_policy(temp_dir / "missing.yaml")
        assert exc_info.value.detail == "file not found"
        assert exc_info.value.suggestion is not None

    def test_load_policy_invalid_yaml(self) -> None:
        """Malformed YAML raises PolicyLoadError."""
        with pytest.raises(PolicyLoadError):
            load_policy_from_string("statements: [unclosed")

    def test_load_policy_invalid_schema(self) -> None:
        """Schema violations raise PolicyLoadError."""
        with pytest.raises(PolicyLoadError) as exc_info:
            load_policy_from_string("- resource: POST\n  actions: [read]\n  effect: perhaps\n")
        assert isinstance(exc_info.value.__cause__, ValidationError)

    def test_load_config_file(self, config_file: Path) -> None:
        """load_config reads from disk."""
        config = load_config(config_file)
        assert set(config.resources) == {"POST", "USER", "SETTINGS"}

    def test_load_config_missing_file(self, temp_dir: Path) -> None:
        """A missing registry raises ConfigLoadError."""
        with pytest.raises(ConfigLoadError):
            load_config(temp_dir / "missing.yaml")

    def test_load_config_invalid(self) -> None:
        """A registry with non-list actions raises ConfigLoadError."""
        with pytest.raises(ConfigLoadError):
            load_config_from_string("POST: 42\n")
