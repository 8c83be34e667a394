"""
Exceptions raised by the claims policy engine.

Only structurally invalid input raises. Semantic problems such as
out-of-range confidences or inverted cost ranges are reported by
``validate_assessment`` instead.
"""


class ClaimsEngineError(Exception):
    """Base class for claims engine errors."""


class InvalidPartsError(ClaimsEngineError, ValueError):
    """Raised when the damaged parts input is not a list of parts."""


class PolicyConfigError(ClaimsEngineError, ValueError):
    """Raised when a policy configuration document is malformed."""


class OverrideError(ClaimsEngineError, IndexError):
    """Raised when an override targets a part that does not exist."""
