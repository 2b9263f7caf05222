"""Policy Decision Point (PDP) - ABAC policy model and evaluation engine.

- pdp/ (this package): policy model and evaluation
- audit/: persists and queries evaluation outcomes
- authoring/: builds policies from user input

The PDP is stateless and side-effect free.

Structure:
    decision.py       - Decision enum (ALLOW/DENY)
    policy.py         - Policy models (Policy, AttributeCondition, enums)
    matcher.py        - Operator semantics for conditions
    engine.py         - PolicyEngine for evaluation
"""

from abac_console.pdp.decision import Decision
from abac_console.pdp.engine import (
    PolicyTrace,
    EvaluationRequest,
    EvaluationResult,
    PolicyEngine,
    evaluation_order,
)
from abac_console.pdp.policy import (
    AttributeCondition,
    Policy,
    PolicyCategory,
    PolicyScope,
    canonical_policy_id,
    is_reference,
)

__all__ = [
    # Decision
    "Decision",
    # Engine
    "PolicyTrace",
    "EvaluationRequest",
    "EvaluationResult",
    "PolicyEngine",
    "evaluation_order",
    # Policy models
    "AttributeCondition",
    "Policy",
    "PolicyCategory",
    "PolicyScope",
    "canonical_policy_id",
    "is_reference",
]
