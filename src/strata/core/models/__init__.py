"""Model discovery, association wiring and the immutable model registry."""

from .discovery import ModelDefinition, strategy_for
from .document import DocumentModel, DocumentSchema
from .loader import load_models
from .registry import LoadFailure, ModelRegistry

__all__ = [
    "DocumentModel",
    "DocumentSchema",
    "LoadFailure",
    "ModelDefinition",
    "ModelRegistry",
    "load_models",
    "strategy_for",
]
