from __future__ import annotations

import logging
import re

LOGGER = logging.getLogger(__name__)

BRACKETED_CITATION_PATTERN = re.compile(r"【.*?】", re.DOTALL)
INLINE_REFERENCE_PATTERN = re.compile(r"\[\d+:[^\[\]]*\]")
WHITESPACE_RUN_PATTERN = re.compile(r"\s{2,}")
ANY_WHITESPACE_PATTERN = re.compile(r"\s+")
TYPOGRAPHIC_APOSTROPHES = str.maketrans({"\u2018": "'", "\u2019": "'"})


def _clean_once(text: str) -> str:
    cleaned = BRACKETED_CITATION_PATTERN.sub("", text)
    cleaned = INLINE_REFERENCE_PATTERN.sub("", cleaned)
    cleaned = WHITESPACE_RUN_PATTERN.sub(" ", cleaned)
    return cleaned.strip()


def sanitize_text(text: str) -> str:
    # Repeat to a fixed point: removing one span can expose another ("[[1:a]2:b]").
    try:
        current = _clean_once(text)
        while True:
            cleaned = _clean_once(current)
            if cleaned == current:
                return cleaned
            current = cleaned
    except Exception:
        LOGGER.warning("sanitize_text failed; returning input unchanged", exc_info=True)
        return text


def fold_for_matching(text: str) -> str:
    """Lower-case, straighten quote marks and collapse every whitespace run."""
    folded = text.translate(TYPOGRAPHIC_APOSTROPHES).lower()
    return ANY_WHITESPACE_PATTERN.sub(" ", folded).strip()
