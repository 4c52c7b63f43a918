"""
Company Matching
Fuzzy matching of LinkedIn contact companies against investor firm names
"""
from difflib import SequenceMatcher
from typing import Iterable, List, Mapping

from pydantic import BaseModel

from investor_crm.services.linkedin.normalizer import (
    extract_company_tokens,
    normalize_company_name,
)

DEFAULT_THRESHOLD = 0.8
MIN_NAME_LENGTH = 4


class CompanyMatch(BaseModel):
    investor_id: str
    firm_name: str
    similarity_score: float  # 0-1, 1 = identical


def calculate_company_similarity(a: str, b: str) -> float:
    """
    Similarity of two normalized names in [0, 1].

    Takes the better of the whole-string SequenceMatcher ratio and the best
    ratio of the shorter string against equally long windows of the longer
    one, so "sequoia" scores high against "sequoia heritage".
    """
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    full_ratio = SequenceMatcher(None, a, b).ratio()

    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    best_partial = 0.0
    for block in SequenceMatcher(None, shorter, longer).get_matching_blocks():
        start = max(block.b - block.a, 0)
        window = longer[start:start + len(shorter)]
        if not window:
            continue
        ratio = SequenceMatcher(None, shorter, window).ratio()
        if ratio > best_partial:
            best_partial = ratio
            if ratio == 1.0:
                break

    return max(full_ratio, best_partial)


def _shares_token(a: str, b: str) -> bool:
    """At least one token of the smaller token set appears in the larger."""
    tokens_a = extract_company_tokens(a)
    tokens_b = extract_company_tokens(b)
    shorter, longer = (tokens_a, tokens_b) if len(tokens_a) <= len(tokens_b) else (tokens_b, tokens_a)
    return any(word in longer for word in shorter)


class CompanyMatcher:
    """
    Matcher over a fixed investor list.

    Firm names are normalized once at construction.
    """

    def __init__(self, investors: Iterable[Mapping], threshold: float = DEFAULT_THRESHOLD):
        self.threshold = threshold
        self.entries = [
            (str(inv["id"]), inv["firm_name"], normalize_company_name(inv["firm_name"]))
            for inv in investors
            if inv.get("firm_name")
        ]

    def find_matches(self, company_name: str) -> List[CompanyMatch]:
        normalized = normalize_company_name(company_name)
        if len(normalized) < MIN_NAME_LENGTH:
            return []

        matches = []
        for investor_id, firm_name, investor_norm in self.entries:
            if len(investor_norm) < MIN_NAME_LENGTH:
                continue
            score = calculate_company_similarity(normalized, investor_norm)
            if score <= self.threshold:
                continue
            if not _shares_token(normalized, investor_norm):
                continue
            matches.append(CompanyMatch(
                investor_id=investor_id,
                firm_name=firm_name,
                similarity_score=round(score, 4),
            ))

        matches.sort(key=lambda m: m.similarity_score, reverse=True)
        return matches


def find_company_matches(
    company_name: str,
    investors: Iterable[Mapping],
    threshold: float = DEFAULT_THRESHOLD,
) -> List[CompanyMatch]:
    """One-off match of a single company name."""
    return CompanyMatcher(investors, threshold).find_matches(company_name)
