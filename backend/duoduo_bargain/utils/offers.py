"""
Offer parsing and formatting utilities.

WHAT: Pull a price out of a chat reply and spot acceptance wording
WHY: Persona replies are free text; the orchestrator needs numbers and a stop signal
HOW: Regex for amounts, fixed vocabulary for agreement
"""

import re

from ..utils.logger import get_logger

logger = get_logger(__name__)


# 3-5 ASCII digits followed by a currency marker, e.g. "我愿意出5000元".
# \s stays Unicode-aware so ideographic and no-break spaces are skipped.
PRICE_PATTERN = re.compile(r'([0-9]{3,5})\s*(元|块|￥|¥)')

# "可以" and "好的" also occur in non-committal replies ("可以再商量").
# Matching them anyway is the established behavior; callers see those as agreement.
AGREEMENT_PHRASES = (
    "同意",
    "成交",
    "好的",
    "没问题",
    "就这样",
    "可以",
    "好的成交",
    "deal",
)


def extract_price(text: str) -> int | None:
    """
    Extract the first monetary amount mentioned in an utterance.

    Args:
        text: Chat reply

    Returns:
        Integer amount of the first match, or None
    """
    if not text:
        return None

    match = PRICE_PATTERN.search(text)
    if not match:
        return None

    price = int(match.group(1))
    logger.debug(f"Extracted price {price} from '{match.group(0)}'")
    return price


def detect_agreement(text: str) -> bool:
    """
    Check whether an utterance signals acceptance.

    Args:
        text: Chat reply

    Returns:
        True if any agreement phrase occurs (case-insensitive)
    """
    if not text:
        return False

    lowered = text.lower()
    return any(phrase in lowered for phrase in AGREEMENT_PHRASES)


def format_price(price: float) -> str:
    """Render a price without a trailing '.0' when it is integral."""
    if float(price).is_integer():
        return str(int(price))
    return f"{price:g}"
