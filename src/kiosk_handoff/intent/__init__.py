"""Intent extraction and product recommendation.

Public surface
--------------
- IntentExtractor, ParsedMessage
- Recommender, Recommendations, ScoredProduct
"""
from __future__ import annotations

from kiosk_handoff.intent.extractor import IntentExtractor, ParsedMessage, tags_for_intent
from kiosk_handoff.intent.recommender import Recommendations, Recommender, ScoredProduct

__all__ = [
    "IntentExtractor",
    "ParsedMessage",
    "Recommendations",
    "Recommender",
    "ScoredProduct",
    "tags_for_intent",
]
