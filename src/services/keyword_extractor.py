"""
Keyword extraction for automatic bookmark tags.

Turns a page title and description into at most five lowercase tag candidates.
When no real tags can be produced one of three sentinel tags is returned
instead, and each one points at a different stage of the pipeline:

- ``uncategorized``: there was no text to work with (usually the fetch failed).
- ``general``: text was present but every token was filtered out.
- ``manual-review``: the keyword extractor itself crashed.
"""
import logging
import re
from collections.abc import Callable
from functools import lru_cache

from sklearn.feature_extraction.text import CountVectorizer

from core.config import get_settings

logger = logging.getLogger(__name__)

UNCATEGORIZED_TAG = "uncategorized"
GENERAL_TAG = "general"
MANUAL_REVIEW_TAG = "manual-review"
SENTINEL_TAGS = frozenset({UNCATEGORIZED_TAG, GENERAL_TAG, MANUAL_REVIEW_TAG})

MAX_TAGS = 5
MIN_TAG_LENGTH = 4  # tokens must be longer than 3 characters

_DIGITS = re.compile(r"\d+")
# Apostrophes split contractions so "it's" doesn't become "its"
_APOSTROPHE = re.compile(r"['’]")
# Runs of two or more letters; digits and underscores never start or join a token
_WORD_PATTERN = r"(?u)\b[^\W\d_]{2,}\b"

KeywordExtractor = Callable[[str], list[str]]


class KeywordExtractionError(Exception):
    """Raised when the keyword extraction backend fails unexpectedly."""

    pass


def _preprocess(text: str) -> str:
    """Case-fold and strip digits before tokenizing."""
    text = text.lower()
    text = _DIGITS.sub(" ", text)
    return _APOSTROPHE.sub(" ", text)


@lru_cache(maxsize=1)
def _get_analyzer() -> Callable[[str], list[str]]:
    """Build (once) the English stopword-filtering analyzer."""
    vectorizer = CountVectorizer(
        preprocessor=_preprocess,
        token_pattern=_WORD_PATTERN,
        stop_words="english",
    )
    return vectorizer.build_analyzer()


def extract_raw_keywords(text: str) -> list[str]:
    """
    Tokenize English text into keywords in order of first appearance.

    Case-folds, strips digits, drops English stopwords and removes repeated
    terms. No length filtering or truncation happens here.

    Raises:
        KeywordExtractionError: If the underlying analyzer fails.
    """
    try:
        tokens = _get_analyzer()(text)
    except (ValueError, TypeError) as e:
        raise KeywordExtractionError(str(e)) from e
    return list(dict.fromkeys(tokens))


def extract_keywords(
    title: str,
    description: str,
    extractor: KeywordExtractor = extract_raw_keywords,
) -> list[str]:
    """
    Derive up to five tag candidates from a page title and description.

    Args:
        title: Page title (may be empty).
        description: Page description (may be empty).
        extractor: Keyword backend returning ranked tokens for a text.

    Returns:
        Between one and five tags. The extractor's own ranking is kept; tokens of
        three characters or fewer, or longer than the tag name limit, are
        dropped before truncating. Returns ``["uncategorized"]`` for empty input, ``["general"]`` when nothing survives
        filtering and ``["manual-review"]`` when the extractor raises.
    """
    combined_text = f"{title} {description}"
    if not combined_text.strip():
        return [UNCATEGORIZED_TAG]

    try:
        keywords = extractor(combined_text)
    except Exception:
        logger.error("Keyword extraction failed", exc_info=True)
        return [MANUAL_REVIEW_TAG]

    max_length = get_settings().max_tag_name_length
    filtered = [
        word for word in keywords
        if MIN_TAG_LENGTH <= len(word) <= max_length
    ][:MAX_TAGS]
    return filtered or [GENERAL_TAG]
