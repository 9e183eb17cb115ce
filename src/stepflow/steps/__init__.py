# src/stepflow/steps/__init__.py
"""
Steps embutidos do StepFlow.

Todos seguem o contrato `handle(payload, next)` e possuem `label` próprio.
"""

from .actions import ACTIONS, Action, action, append, lowercase, prepend, replace, reverse, trim, uppercase
from .batch import BatchStep
from .cache import CacheStep
from .rate_limit import RateLimitStep
from .transform import TransformStep
from .validation import ValidationStep

__all__ = [
    "ACTIONS",
    "Action",
    "BatchStep",
    "CacheStep",
    "RateLimitStep",
    "TransformStep",
    "ValidationStep",
    "action",
    "append",
    "lowercase",
    "prepend",
    "replace",
    "reverse",
    "trim",
    "uppercase",
]
