"""
Policy evaluation for accessctl.

Key concepts:
    - Statement: allow or deny a set of actions on one resource,
      optionally only under given attribute contexts
    - Specificity: the number of keys in a matched statement context;
      more specific matches override less specific ones
    - Deny-by-default: a query that matches nothing is denied
    - Deny wins ties: at equal specificity a deny beats any allow
"""

from accessctl.policy.engine import (
    AccessControl,
    MatchedCandidate,
    evaluate,
    evaluate_all,
    evaluate_any,
    get_access_control,
    normalize_actions,
    normalize_contexts,
)

__all__ = [
    "AccessControl",
    "MatchedCandidate",
    "evaluate",
    "evaluate_all",
    "evaluate_any",
    "get_access_control",
    "normalize_actions",
    "normalize_contexts",
]
