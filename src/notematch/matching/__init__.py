"""
Matching subpackage exposes the template store and the denomination matcher.
"""

from .engine import UNKNOWN_LABEL, MatchResult, TemplateMatcher, classify, ncc_score
from .store import Template, TemplateStore

__all__ = [
    "MatchResult",
    "Template",
    "TemplateMatcher",
    "TemplateStore",
    "UNKNOWN_LABEL",
    "classify",
    "ncc_score",
]
