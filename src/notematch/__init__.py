"""
Core package for template-matching banknote classification.
"""

from .config import ClassifierConfig
from .errors import ConfigurationError, DimensionMismatchError, NoteMatchError, StoreNotReadyError
from .matching import UNKNOWN_LABEL, MatchResult, Template, TemplateMatcher, TemplateStore, classify

__all__ = [
    "ClassifierConfig",
    "ConfigurationError",
    "DimensionMismatchError",
    "MatchResult",
    "NoteMatchError",
    "StoreNotReadyError",
    "Template",
    "TemplateMatcher",
    "TemplateStore",
    "UNKNOWN_LABEL",
    "classify",
]
