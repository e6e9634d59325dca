"""Deterministic truth verdict from evidence snippets.

Each indicator word counts once if it occurs anywhere (as a substring) in the
joined, lower-cased snippets:
- more negative than positive indicators, at least one negative -> false
- more positive than negative indicators, at least one positive -> true
- equal non-zero counts -> misleading
- no indicators or no evidence -> unverified
"""

from typing import Iterable

from repushield.data_management.schemas import EvidenceSource, TruthStatus

POSITIVE_INDICATORS = ("true", "confirmed", "verified", "accurate", "correct")
NEGATIVE_INDICATORS = ("false", "misleading", "untrue", "incorrect", "debunked", "hoax")


def count_indicators(text: str, indicators: Iterable[str]) -> int:
    return sum(1 for indicator in indicators if indicator in text)


def determine_truth_status(sources: list[EvidenceSource]) -> TruthStatus:
    if not sources:
        return TruthStatus.UNVERIFIED

    text = " ".join(source.snippet for source in sources).lower()
    positive = count_indicators(text, POSITIVE_INDICATORS)
    negative = count_indicators(text, NEGATIVE_INDICATORS)

    if negative > positive and negative > 0:
        return TruthStatus.FALSE
    if positive > negative and positive > 0:
        return TruthStatus.TRUE
    if positive > 0 or negative > 0:
        return TruthStatus.MISLEADING
    return TruthStatus.UNVERIFIED
