"""Decision enum for policy evaluation results."""

from enum import Enum


class Decision(str, Enum):
    """Final outcome of an access-control evaluation.

    Values match the wire format used by the platform API and decision logs.
    """

    ALLOW = "ALLOW"
    DENY = "DENY"
