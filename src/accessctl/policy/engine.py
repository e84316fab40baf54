"""
Policy Engine for accessctl.

The engine decides whether an action on a resource is allowed, given a
policy of allow/deny statements and optional attribute contexts (ABAC).

Design Principles:
    - Deny-by-default: nothing is allowed unless a statement allows it
    - Never raises: every query resolves to a boolean
    - Order-independent: only specificity and effect decide conflicts
    - Stateless: a bound policy can be shared between threads

How it works:
    1. Keep statements for the queried resource
    2. Keep those naming the action or "*"
    3. Match statement contexts against input contexts; each matching pair
       is a candidate whose specificity is the number of policy keys
    4. No candidates means deny
    5. Among the most specific candidates, any deny wins
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from accessctl.schema import AccessDecision, Effect, PolicyInput, coerce_policy

logger = logging.getLogger(__name__)

# A single attribute map, a list of them, or None for "no context".
ContextInput = Union[Mapping[str, Any], Sequence[Mapping[str, Any]], None]

_MISSING = object()


@dataclass(frozen=True, slots=True)
class MatchedCandidate:
    """One matching statement/context pairing, alive only during a call."""

    effect: Effect
    specificity: int


def normalize_contexts(context: ContextInput) -> list[Mapping[str, Any]]:
    """
    Turn caller input into a list of attribute maps.

    None becomes an empty list, a single mapping becomes a one-element list.
    An empty mapping is kept: it is a present-but-empty context. Items that
    are not mappings are dropped.
    """
    if context is None:
        return []
    if isinstance(context, Mapping):
        return [context]
    if isinstance(context, (str, bytes)):
        return []
    try:
        return [item for item in context if isinstance(item, Mapping)]
    except TypeError:
        return []


def normalize_actions(actions: Any) -> list[Any]:
    """
    Turn caller input into a list of action names.

    A bare string is one action. None and non-iterables are no actions.
    """
    if actions is None:
        return []
    if isinstance(actions, (str, bytes)):
        return [actions]
    try:
        return list(actions)
    except TypeError:
        return []


def values_equal(expected: Any, actual: Any) -> bool:
    """
    Compare a policy attribute value with an input attribute value.

    Uses ``==`` except that booleans only equal booleans, so ``True``
    does not match ``1``, also inside lists, tuples and mappings.
    A comparison that raises is a mismatch.
    """
    try:
        return _strict_equal(expected, actual)
    except Exception:
        return False


def _strict_equal(expected: Any, actual: Any) -> bool:
    if isinstance(expected, bool) != isinstance(actual, bool):
        return False
    if isinstance(expected, Mapping) and isinstance(actual, Mapping):
        return expected.keys() == actual.keys() and all(
            _strict_equal(value, actual[key]) for key, value in expected.items()
        )
    if isinstance(expected, (list, tuple)) and isinstance(actual, (list, tuple)):
        # [1] != (1,) under ==
        return (
            isinstance(expected, list) == isinstance(actual, list)
            and len(expected) == len(actual)
            and all(_strict_equal(e, a) for e, a in zip(expected, actual))
        )
    return bool(expected == actual)


def context_matches(policy_context: Mapping[str, Any], input_context: Mapping[str, Any]) -> bool:
    """Check that every policy key is present in the input with an equal value."""
    for key, expected in policy_context.items():
        actual = input_context.get(key, _MISSING)
        if actual is _MISSING or not values_equal(expected, actual):
            return False
    return True


def resolve(candidates: Sequence[MatchedCandidate]) -> AccessDecision:
    """
    Reduce matched candidates to a single decision.

    Only candidates at the highest specificity count. Among those, a single
    deny is enough to deny.
    """
    if not candidates:
        return AccessDecision.no_match()

    top = max(c.specificity for c in candidates)
    top_effects = {c.effect for c in candidates if c.specificity == top}

    if Effect.DENY in top_effects:
        if Effect.ALLOW in top_effects:
            reason = f"Deny overrides allow at equal specificity {top}"
        else:
            reason = f"Denied by statement at specificity {top}"
        return AccessDecision(
            allowed=False,
            reason=reason,
            effect=Effect.DENY,
            specificity=top,
            candidates=len(candidates),
        )

    return AccessDecision(
        allowed=True,
        reason=f"Allowed by statement at specificity {top}",
        effect=Effect.ALLOW,
        specificity=top,
        candidates=len(candidates),
    )


class AccessControl:
    """
    A policy bound for evaluation.

    Usage:
        access = get_access_control(policy)
        if access.can("POST", "update", {"authorId": user.id}):
            ...

    Context may be omitted, a single mapping, or a list of mappings. With a
    list, a conditioned statement applies when any of its contexts matches
    any of the given ones.

    Attributes:
        policy: The bound Policy. Replace the whole AccessControl to change it.
    """

    def __init__(self, policy: PolicyInput) -> None:
        self.policy = coerce_policy(policy)

    def __repr__(self) -> str:
        return f"AccessControl(statements={len(self.policy.statements)})"

    def can(self, resource: str, action: str, context: ContextInput = None) -> bool:
        """Check whether the action on the resource is allowed."""
        return self.explain(resource, action, context).allowed

    def can_all(
        self,
        resource: str,
        actions: Iterable[str],
        context: ContextInput = None,
    ) -> bool:
        """Check that every action is allowed. True for an empty list."""
        input_contexts = normalize_contexts(context)
        return all(
            self.can(resource, action, input_contexts) for action in normalize_actions(actions)
        )

    def can_any(
        self,
        resource: str,
        actions: Iterable[str],
        context: ContextInput = None,
    ) -> bool:
        """Check that at least one action is allowed. False for an empty list."""
        input_contexts = normalize_contexts(context)
        return any(
            self.can(resource, action, input_contexts) for action in normalize_actions(actions)
        )

    def explain(
        self,
        resource: str,
        action: str,
        context: ContextInput = None,
    ) -> AccessDecision:
        """
        Evaluate a query and describe how the decision was reached.

        Args:
            resource: Resource identifier
            action: Action identifier
            context: Attribute map(s) describing the request, or None

        Returns:
            AccessDecision with the winning effect and specificity
        """
        input_contexts = normalize_contexts(context)
        candidates = self._match(resource, action, input_contexts)
        decision = resolve(candidates)
        logger.debug(
            "%s.%s with %d context(s): %s (%s)",
            resource,
            action,
            len(input_contexts),
            "allow" if decision.allowed else "deny",
            decision.reason,
        )
        return decision

    def _match(
        self,
        resource: str,
        action: str,
        input_contexts: Sequence[Mapping[str, Any]],
    ) -> list[MatchedCandidate]:
        """Collect a candidate for every matching statement/context pairing."""
        candidates: list[MatchedCandidate] = []

        for stmt in self.policy.statements:
            if stmt.resource != resource or not stmt.covers_action(action):
                continue

            # Unconditional statements apply to every query
            if not stmt.contexts:
                candidates.append(MatchedCandidate(stmt.effect, 0))
                continue

            for policy_context in stmt.contexts:
                specificity = len(policy_context)
                for input_context in input_contexts:
                    if context_matches(policy_context, input_context):
                        candidates.append(MatchedCandidate(stmt.effect, specificity))

        return candidates


def get_access_control(policy: PolicyInput) -> AccessControl:
    """
    Bind a policy and return its query operations.

    Args:
        policy: A Policy, a sequence of Statements (or statement mappings),
            or None for an empty policy

    Returns:
        AccessControl exposing can, can_all, can_any and explain
    """
    return AccessControl(policy)


def evaluate(
    policy: PolicyInput,
    resource: str,
    action: str,
    context: ContextInput = None,
) -> bool:
    """One-shot form of AccessControl.can."""
    return AccessControl(policy).can(resource, action, context)


def evaluate_all(
    policy: PolicyInput,
    resource: str,
    actions: Iterable[str],
    context: ContextInput = None,
) -> bool:
    """One-shot form of AccessControl.can_all."""
    return AccessControl(policy).can_all(resource, actions, context)


def evaluate_any(
    policy: PolicyInput,
    resource: str,
    actions: Iterable[str],
    context: ContextInput = None,
) -> bool:
    """One-shot form of AccessControl.can_any."""
    return AccessControl(policy).can_any(resource, actions, context)
