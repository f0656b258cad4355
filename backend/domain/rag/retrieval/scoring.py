"""
Re-ranking signals.

Every function here is pure and returns a score in [0, 1] (the boost factor
returns a multiplier >= 1). Missing signals fall back to a neutral value.
"""

import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

from domain.rag.types import Chunk, ConversationContext

# Composite weights (sum to 1.0)
SCORE_WEIGHTS: Dict[str, float] = {
    "similarity": 0.35,
    "content_type": 0.20,
    "freshness": 0.15,
    "quality": 0.15,
    "context_match": 0.15,
}

# Query intent vocabularies
POLICY_KEYWORDS = (
    "policy", "policies", "return", "refund", "exchange", "shipping", "ship",
    "delivery", "deliver", "warranty", "guarantee", "privacy", "terms",
)
PURCHASE_KEYWORDS = (
    "buy", "purchase", "price", "cost", "order", "product", "item", "stock",
    "available", "sale", "discount", "cheap", "size", "color",
)
QUESTION_WORDS = ("what", "how", "why", "when", "where", "which", "who", "can", "do", "does", "is", "are")

# Baseline when no intent matches; deliberately low
CONTENT_TYPE_BASELINES: Dict[str, float] = {
    "faq": 0.5,
    "policy": 0.45,
    "product": 0.45,
    "page": 0.4,
    "post": 0.35,
    "category": 0.35,
}
DEFAULT_CONTENT_TYPE_BASELINE = 0.3

# (max age in days, score); beyond the last bucket the score is VERY_OLD_SCORE
FRESHNESS_BUCKETS = (
    (1, 1.0),
    (14, 0.9),
    (30, 0.8),
    (90, 0.7),
    (180, 0.6),
    (365, 0.5),
)
VERY_OLD_SCORE = 0.3
UNKNOWN_AGE_SCORE = 0.5

QUALITY_SATURATION_CHARS = 500
QUALITY_SATURATION_METADATA_KEYS = 5

NEUTRAL_CONTEXT_SCORE = 0.5

KEYWORD_MATCH_BOOST = 0.1  # per matched keyword
MAX_KEYWORD_MATCHES = 5
PRIORITY_TYPE_BOOST = 1.1
PRIORITY_CONTENT_TYPES = ("faq", "policy")
RECENTLY_VIEWED_BOOST = 1.2
MAX_BOOST = 2.0

STOPWORDS = frozenset({
    "what", "your", "with", "that", "this", "have", "from", "they", "will",
    "about", "there", "their", "would", "could", "should", "which", "when",
    "where", "does", "into", "than", "then", "them", "these", "those", "some",
})

_WORD_RE = re.compile(r"[a-z0-9]+(?:['-][a-z0-9]+)*")


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _words(text: str) -> List[str]:
    return _WORD_RE.findall(text.lower())


def has_policy_intent(query: str) -> bool:
    words = set(_words(query))
    return any(k in words for k in POLICY_KEYWORDS)


def has_purchase_intent(query: str) -> bool:
    words = set(_words(query))
    return any(k in words for k in PURCHASE_KEYWORDS)


def is_question(query: str) -> bool:
    stripped = query.strip()
    if stripped.endswith("?"):
        return True
    words = _words(stripped)
    return bool(words) and words[0] in QUESTION_WORDS


def salient_keywords(query: str) -> List[str]:
    """Distinct query words longer than three characters, minus stopwords"""
    seen = []
    for word in _words(query):
        if len(word) > 3 and word not in STOPWORDS and word not in seen:
            seen.append(word)
    return seen


def calculate_content_type_score(chunk: Chunk, query: str) -> float:
    """How well the chunk's content type fits the intent expressed by the query."""
    content_type = (chunk.content_type or "unknown").lower()
    score = CONTENT_TYPE_BASELINES.get(content_type, DEFAULT_CONTENT_TYPE_BASELINE)

    if has_policy_intent(query):
        if content_type == "policy":
            score = max(score, 0.95)
        elif content_type == "faq":
            score = max(score, 0.85)

    if has_purchase_intent(query) and content_type == "product":
        score = max(score, 0.95)

    if is_question(query) and content_type == "faq":
        score = max(score, 0.85)

    return _clamp(score)


def calculate_freshness_score(
    last_modified: Optional[datetime],
    now: Optional[datetime] = None,
) -> float:
    """
    Discrete decay by age bucket.

    Naive timestamps are treated as UTC; timestamps in the future count as fresh.
    """
    if last_modified is None:
        return UNKNOWN_AGE_SCORE

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    if last_modified.tzinfo is None:
        last_modified = last_modified.replace(tzinfo=timezone.utc)

    age_days = (now - last_modified).total_seconds() / 86400.0
    for max_days, score in FRESHNESS_BUCKETS:
        if age_days <= max_days:
            return score
    return VERY_OLD_SCORE


def calculate_quality_score(chunk: Chunk) -> float:
    """
    Content richness: length (saturating), title, summary and populated metadata keys.

    Components: 0.1 floor + 0.4 length + 0.15 title + 0.1 summary + 0.25 metadata.
    """
    score = 0.1

    length = len(chunk.content.strip())
    score += 0.4 * min(length, QUALITY_SATURATION_CHARS) / QUALITY_SATURATION_CHARS

    if chunk.source_title.strip():
        score += 0.15

    if str(chunk.metadata.get("summary") or "").strip():
        score += 0.1

    populated = sum(
        1 for key, value in chunk.metadata.items()
        if key != "summary" and value not in (None, "", [], {})
    )
    score += 0.25 * min(populated, QUALITY_SATURATION_METADATA_KEYS) / QUALITY_SATURATION_METADATA_KEYS

    return _clamp(score)


def calculate_context_match_score(chunk: Chunk, context: Optional[ConversationContext]) -> float:
    """Fit between the chunk and where the shopper currently is / what they intend."""
    score = NEUTRAL_CONTEXT_SCORE
    if context is None:
        return score

    content_type = (chunk.content_type or "").lower()
    page_type = (context.page_type or "").lower()

    if page_type:
        if page_type == content_type:
            score += 0.3
        elif page_type == "shop" and content_type in ("product", "category"):
            score += 0.2

    if (context.intent or "").lower() == "purchase" and content_type == "product":
        score += 0.2

    return _clamp(score)


def calculate_boost_factor(
    chunk: Chunk,
    query: str,
    context: Optional[ConversationContext] = None,
) -> float:
    """
    Multiplier >= 1.0 applied to the composite score.

    - exact keyword hits in the content (10% each, up to five)
    - inherently high-priority content types
    - the chunk's source is among the shopper's recently viewed products
    """
    boost = 1.0
    content = chunk.content.lower()

    matches = sum(1 for word in salient_keywords(query) if word in content)
    if matches:
        boost *= 1.0 + KEYWORD_MATCH_BOOST * min(matches, MAX_KEYWORD_MATCHES)

    if (chunk.content_type or "").lower() in PRIORITY_CONTENT_TYPES:
        boost *= PRIORITY_TYPE_BOOST

    if context is not None and context.recent_products:
        source_id = chunk.metadata.get("source_id")
        if source_id is not None and str(source_id) in context.recent_products:
            boost *= RECENTLY_VIEWED_BOOST

    return _clamp(boost, 1.0, MAX_BOOST)


def calculate_rerank_score(
    chunk: Chunk,
    query: str,
    context: Optional[ConversationContext] = None,
    now: Optional[datetime] = None,
) -> float:
    """Weighted composite of the five signals, boosted and clamped to [0, 1]."""
    scores = {
        "similarity": chunk.similarity_score,
        "content_type": calculate_content_type_score(chunk, query),
        "freshness": calculate_freshness_score(chunk.last_modified, now),
        "quality": calculate_quality_score(chunk),
        "context_match": calculate_context_match_score(chunk, context),
    }

    composite = sum(scores[name] * weight for name, weight in SCORE_WEIGHTS.items())
    return _clamp(composite * calculate_boost_factor(chunk, query, context))
