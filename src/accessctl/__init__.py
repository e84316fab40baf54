"""
accessctl - Attribute-based access control decisions.

accessctl answers one question: may this subject perform this action on
this resource? It provides:
- Declarative allow/deny statements with optional attribute contexts
- Specificity-based conflict resolution (deny wins ties)
- Deny-by-default evaluation that never raises
- YAML policy files and a resource registry for validating them

Example usage:
    >>> from accessctl import get_access_control
    >>> access = get_access_control([
    ...     {"resource": "POST", "actions": ["read"], "effect": "allow"},
    ... ])
    >>> access.can("POST", "read")
    True

    $ accessctl check policy.yaml POST update -c authorId=auth-123
"""

from accessctl.policy import (
    AccessControl,
    evaluate,
    evaluate_all,
    evaluate_any,
    get_access_control,
)
from accessctl.schema import (
    AccessControlConfig,
    AccessDecision,
    Effect,
    Policy,
    Statement,
    load_config,
    load_policy,
)

__version__ = "0.1.0"
__author__ = "accessctl Contributors"

__all__ = [
    "__version__",
    "__author__",
    "AccessControl",
    "AccessControlConfig",
    "AccessDecision",
    "Effect",
    "Policy",
    "Statement",
    "evaluate",
    "evaluate_all",
    "evaluate_any",
    "get_access_control",
    "load_config",
    "load_policy",
]
