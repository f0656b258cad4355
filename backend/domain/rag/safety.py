"""
Pre-generation query screening
"""

import logging
import re
from typing import Dict, List, Pattern, Tuple

from domain.rag.types import SafetyLevel
from core.exceptions import SafetyViolationError

logger = logging.getLogger(__name__)

SAFETY_VIOLATION_MESSAGE = "Query contains inappropriate content"


def _compile(*patterns: str) -> List[Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


# Attempts to override the assistant's instructions; blocked at every level
INJECTION_PATTERNS = _compile(
    r"\bignore\s+(all\s+)?(the\s+)?(previous|prior|above)\s+instructions\b",
    r"\bsystem\s*:\s*you\s+are\b",
    r"\bassistant\s*:\s*i\s+am\b",
    r"\bpretend\s+(to\s+be|you\s+are)\b",
    r"\bact\s+as\s+if\b",
    r"\bforget\s+(everything|all\s+previous)\b",
    r"\bnew\s+instructions\s*:",
)

# (category, patterns) per level, widest first
SAFETY_PATTERNS: Dict[str, List[Tuple[str, List[Pattern]]]] = {
    SafetyLevel.STRICT: [
        ("system_compromise", _compile(r"\b(hack|exploit|crack|pirate)\b")),
        ("adult", _compile(r"\b(porn|adult|xxx)\b")),
        ("fraud", _compile(r"\b(spam|scam|phishing)\b")),
    ],
    SafetyLevel.MODERATE: [
        ("system_compromise", _compile(r"\b(hack|exploit|crack)\b")),
        ("adult", _compile(r"\b(porn|xxx)\b")),
    ],
    SafetyLevel.RELAXED: [
        # "crack" alone is too ambiguous here ("crack in the wall")
        ("system_compromise", _compile(
            r"\b(hack|exploit)\b",
            r"\bcrack(ing|ed)?\s+(the\s+|a\s+|an\s+|my\s+|your\s+)?"
            r"(password|software|license|licence|serial|key|account|code)s?\b",
        )),
    ],
}


class SafetyChecker:
    """Blocks queries matching the disallowed patterns of the requested level"""

    def check(self, text: str, level: str = SafetyLevel.MODERATE) -> None:
        """
        Screen text.

        Unknown levels fall back to moderate.

        Raises:
            SafetyViolationError: text matched a blocked pattern
        """
        level = level if level in SAFETY_PATTERNS else SafetyLevel.MODERATE

        for category, patterns in SAFETY_PATTERNS[level] + [("prompt_injection", INJECTION_PATTERNS)]:
            for pattern in patterns:
                if pattern.search(text):
                    logger.warning(f"Query blocked by safety check (level={level}, category={category})")
                    raise SafetyViolationError(SAFETY_VIOLATION_MESSAGE, level=level, category=category)

    def is_safe(self, text: str, level: str = SafetyLevel.MODERATE) -> bool:
        try:
            self.check(text, level)
        except SafetyViolationError:
            return False
        return True
