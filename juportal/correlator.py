"""Pairing of judgement-page fiches with the sitemap's FR/NL abstracts.

The sitemap lists abstracts positionally (FR abstract i and NL abstract i are
translations of each other) but does not say which citations belong to which
abstract; the judgement page does, one fiche per abstract, in a single language.
"""
import logging
from typing import List, Optional, Sequence

from juportal.models import Fiche, FicheMapping, Judgement, LegalBasis

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.2
FALLBACK_SEPARATOR = " | "


def _words(text: str):
    return {w for w in text.lower().split() if len(w) > 3}


def text_similarity(a: Optional[str], b: Optional[str]) -> float:
    """Dice coefficient over the sets of words longer than 3 characters."""
    if not a or not b:
        return 0.0
    words_a = _words(a)
    words_b = _words(b)
    if not words_a or not words_b:
        return 0.0
    return 2 * len(words_a & words_b) / (len(words_a) + len(words_b))


def correlate_fiches(fiches: Sequence[Fiche], abstracts_fr: Sequence[str], abstracts_nl: Sequence[str], ecli: str = "") -> List[FicheMapping]:
    """Greedy, document-order assignment of abstracts to fiches.

    Each fiche takes the best scoring abstract index not yet claimed, FR scanned
    before NL, and claims it in both languages.
    """
    used_fr = set()
    used_nl = set()
    mapping = []
    for fiche in fiches:
        if not fiche.has_citations:
            continue
        best_idx = None
        best_score = 0.0
        for used, abstracts in ((used_fr, abstracts_fr), (used_nl, abstracts_nl)):
            for idx, abstract in enumerate(abstracts):
                if idx in used:
                    continue
                score = text_similarity(fiche.abstract, abstract)
                if score > best_score:
                    best_score = score
                    best_idx = idx

        abstract_fr = abstract_nl = None
        low_confidence = best_idx is None or best_score <= SIMILARITY_THRESHOLD
        if low_confidence:
            logger.warning("Low confidence abstract match (score=%.2f) for fiche in %s", best_score, ecli)
        else:
            if best_idx < len(abstracts_fr):
                abstract_fr = abstracts_fr[best_idx]
                used_fr.add(best_idx)
            if best_idx < len(abstracts_nl):
                abstract_nl = abstracts_nl[best_idx]
                used_nl.add(best_idx)

        mapping.append(FicheMapping(
            abstract_fr=abstract_fr,
            abstract_nl=abstract_nl,
            legal_bases=list(fiche.legal_bases),
            unresolved=list(fiche.unresolved),
            low_confidence=low_confidence,
        ))
    return mapping


def fallback_mapping(judgement: Judgement) -> List[FicheMapping]:
    """Every abstract attached to every basis: the pairing cannot be recovered."""
    return [FicheMapping(
        abstract_fr=FALLBACK_SEPARATOR.join(judgement.abstracts_fr) or None,
        abstract_nl=FALLBACK_SEPARATOR.join(judgement.abstracts_nl) or None,
        legal_bases=list(judgement.legal_bases),
        unresolved=list(judgement.unresolved),
    )]


def single_mapping(judgement: Judgement, legal_bases=None, unresolved=None) -> List[FicheMapping]:
    return [FicheMapping(
        abstract_fr=judgement.abstracts_fr[0] if judgement.abstracts_fr else None,
        abstract_nl=judgement.abstracts_nl[0] if judgement.abstracts_nl else None,
        legal_bases=list(judgement.legal_bases if legal_bases is None else legal_bases),
        unresolved=list(judgement.unresolved if unresolved is None else unresolved),
    )]


def fill_missing_identifiers(judgement: Judgement, fiches: Sequence[Fiche]):
    """Resolve the sitemap's unresolved bases from the judgement page links.

    Matching is on the article alone; bases the sitemap already resolved are
    left untouched. Returns (legal_bases, still_unresolved).
    """
    page_bases = [b for f in fiches for b in f.legal_bases if b.identifier]
    legal_bases = list(judgement.legal_bases)
    still_unresolved = []
    for missing in judgement.unresolved:
        hit = next((b for b in page_bases if b.article == missing.article), None)
        if hit is None:
            still_unresolved.append(missing)
            continue
        logger.info("Resolved ELI from HTML | article=%r | eli=%s", missing.article, hit.identifier)
        legal_bases.append(LegalBasis(missing.article, hit.identifier, missing.text_fr, missing.text_nl))
    return legal_bases, still_unresolved


def build_mapping(judgement: Judgement, fiches: Optional[Sequence[Fiche]]) -> List[FicheMapping]:
    """Commit payload of a judgement, given its parsed page (None if not fetched)."""
    if judgement.abstract_count <= 1:
        if fiches is None or not judgement.unresolved:
            return single_mapping(judgement)
        legal_bases, unresolved = fill_missing_identifiers(judgement, fiches)
        return single_mapping(judgement, legal_bases, unresolved)

    if fiches is None:
        return fallback_mapping(judgement)
    with_citations = [f for f in fiches if f.has_citations]
    if not with_citations:
        logger.warning("No fiches with legal bases found on judgement page for %s; assigning all abstracts to all legal bases", judgement.ecli)
        return fallback_mapping(judgement)
    return correlate_fiches(with_citations, judgement.abstracts_fr, judgement.abstracts_nl, judgement.ecli)
