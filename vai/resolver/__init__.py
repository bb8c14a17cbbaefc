"""Confidence resolver module.

Scores candidate intents from the pattern matcher using:
- Missing parameter penalties
- Context bonuses (current target, action sequence)
- Learning bonuses (familiar phrasing, preferred parameters)
"""

from vai.resolver.adjusters import ContextAdjuster, LearningAdjuster
from vai.resolver.confidence_resolver import ConfidenceResolver

__all__ = [
    "ConfidenceResolver",
    "ContextAdjuster",
    "LearningAdjuster",
]
