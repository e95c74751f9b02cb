"""
Domain models — Pydantic types for generation nodes.

All models are re-exported here for convenient access:

    from genguard.core.models import GenerationNode, GenerationSettings, Receipt
"""

from genguard.core.models.action import Invocation, Receipt
from genguard.core.models.generation import (
    GenerationConfig,
    GenerationNode,
    GenerationSettings,
    PackageRef,
)
from genguard.core.models.outcome import GenerationOutcome

__all__ = [
    # action.py
    "Invocation",
    "Receipt",
    # generation.py
    "GenerationConfig",
    "GenerationNode",
    "GenerationSettings",
    "PackageRef",
    # outcome.py
    "GenerationOutcome",
]
