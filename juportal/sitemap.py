"""robots.txt, sitemap index and per-judgement ECLI sitemap parsing.

Judgement sitemaps list their references in document order, one language after
the other::

    OTHER  Code judiciaire - 10-10-1967 - Art. 1068 - 30
    OTHER  Code judiciaire - 10-10-1967 - Art. 1072 - 30
    ELI    https://www.ejustice.just.fgov.be/eli/loi/1967/10/10/1967101052/justel
    OTHER  Code judiciaire - 10-10-1967 - Art. 1080 - 30

An identifier applies to every article of the same law cited right before it,
and is remembered for later citations of that law (the last line above).
"""
import logging
from collections import namedtuple
from typing import Dict, List, Optional, Tuple, Union

from scrapy import Selector

from juportal.citations import CitationKind, match_citation
from juportal.models import Judgement, LegalBasis, Skipped, UnresolvedBasis
from juportal.utility import (
    date_from_sitemap_url,
    extract_date,
    extract_law_key,
    normalize_identifier,
    normalize_whitespace,
    to_iso_date,
)

logger = logging.getLogger(__name__)

ROLE_NUMBER_PREFIXES = ("Numéro de rôle", "Rolnummer")

Reference = namedtuple("Reference", ["type", "lang", "text"])

_Citation = namedtuple("_Citation", ["article", "text", "lang"])


def parse_robots(text: str) -> List[str]:
    """Sitemap index URLs listed in robots.txt, most recent first."""
    urls = []
    for line in (text or "").splitlines():
        line = line.strip()
        if line.startswith("Sitemap:"):
            urls.append(line[len("Sitemap:"):].strip())
    return sorted(urls, key=date_from_sitemap_url, reverse=True)


def _xml_selector(xml: str) -> Selector:
    sel = Selector(text=xml, type="xml")
    sel.remove_namespaces()
    return sel


def parse_sitemap_index(xml: str) -> List[str]:
    sel = _xml_selector(xml)
    return [normalize_whitespace(u) for u in sel.xpath("//sitemap/loc/text()").getall() if u.strip()]


class LawGrouper:
    """Accumulator folded over the references of one judgement sitemap.

    While idle nothing is pending. Article citations open a group under their
    law key; the group is flushed when another law starts, when an identifier
    binds it, when a principle is met, or at the end of the list.
    """

    def __init__(self):
        self.role_number: Optional[str] = None
        self.pending_key: Optional[str] = None
        self.pending: List[_Citation] = []
        self.cache: Dict[str, str] = {}
        self.bound: List[Tuple[_Citation, str]] = []
        self.unbound: List[_Citation] = []
        self.principles: List[_Citation] = []
        self.citations: List[_Citation] = []
        self.unrecognized: List[str] = []

    def feed(self, ref: Reference):
        text = ref.text
        if not text:
            return self
        if ref.type == "ELI":
            self.bind(text)
            return self
        if ref.type != "OTHER":
            return self

        if text.startswith(ROLE_NUMBER_PREFIXES):
            if self.role_number is None:
                for prefix in ROLE_NUMBER_PREFIXES:
                    if text.startswith(prefix):
                        self.role_number = text[len(prefix):].strip()
            return self

        if text.startswith(("http://", "https://")):
            self.bind(text)
            return self

        match = match_citation(text)
        if match.kind in (CitationKind.ARTICLE, CitationKind.NO_ARTICLE):
            logger.debug("Legal basis (XML) | raw=%r | articles=%s | awaiting ELI", text, match.articles)
            if match.law_key != self.pending_key:
                self.flush()
                self.pending_key = match.law_key
            for article in match.articles:
                citation = _Citation(article, text, ref.lang)
                self.pending.append(citation)
                self.citations.append(citation)
        elif match.kind is CitationKind.PRINCIPLE:
            self.flush()
            self.principles.append(_Citation(None, text, ref.lang))
        else:
            logger.warning("Could not extract article from legal basis text: %r", text)
            self.unrecognized.append(text)
        return self

    def bind(self, identifier: str):
        if not self.pending:
            return
        if self.pending_key:
            self.cache[self.pending_key] = identifier
        self.bound.extend((c, identifier) for c in self.pending)
        self._reset()

    def flush(self):
        if self.pending:
            cached = self.cache.get(self.pending_key) if self.pending_key else None
            if cached:
                self.bound.extend((c, cached) for c in self.pending)
            else:
                self.unbound.extend(self.pending)
        self._reset()

    def finish(self):
        self.flush()
        return self

    def _reset(self):
        self.pending = []
        self.pending_key = None


def fold_references(refs) -> LawGrouper:
    grouper = LawGrouper()
    for ref in refs:
        grouper.feed(ref)
    return grouper.finish()


def _texts_by_article_and_date(citations: List[_Citation]):
    lookup: Dict[Tuple[str, str], Dict[str, str]] = {}
    for c in citations:
        texts = lookup.setdefault((c.article, extract_date(c.text) or "no-date"), {})
        texts.setdefault(c.lang or "fr", c.text)
    return lookup


def resolve_bases(grouper: LawGrouper):
    """Resolved and unresolved bases of a folded reference list."""
    lookup = _texts_by_article_and_date(grouper.citations)

    def texts(c):
        return lookup.get((c.article, extract_date(c.text) or "no-date"), {})

    legal_bases = []
    seen = set()
    for citation, raw_identifier in grouper.bound:
        identifier = normalize_identifier(raw_identifier)
        if not identifier:
            logger.debug("Dropping unrecognized identifier %r", raw_identifier)
            continue
        key = (citation.article, identifier)
        if key in seen:
            continue
        seen.add(key)
        t = texts(citation)
        legal_bases.append(LegalBasis(citation.article, identifier, t.get("fr"), t.get("nl")))

    unresolved = []
    for citation in grouper.unbound:
        t = texts(citation)
        unresolved.append(UnresolvedBasis(citation.article, extract_law_key(citation.text), t.get("fr"), t.get("nl")))
    for citation in grouper.principles:
        lang = citation.lang or "fr"
        unresolved.append(UnresolvedBasis(
            None,
            citation.text,
            citation.text if lang == "fr" else None,
            citation.text if lang == "nl" else None,
        ))
    return legal_bases, unresolved


def parse_sitemap_xml(xml: str, source_url: str = "", courts=("CASS",)) -> Union[Judgement, Skipped, None]:
    """Parse one judgement sitemap.

    Returns None when the sitemap carries no ECLI metadata, a ``Skipped`` for
    courts we do not collect and for conclusions (non-ARR ECLIs), and a
    ``Judgement`` otherwise.
    """
    sel = _xml_selector(xml)
    if not sel.xpath("//urlset/url"):
        logger.warning("No URL entry found in %s", source_url)
        return None
    meta = sel.xpath("//url/document/metadata")
    if not meta:
        logger.warning("No ecli:document/metadata found in %s", source_url)
        return None
    meta = meta[0]

    court = normalize_whitespace(meta.xpath("./isVersionOf/court/text()").get()) or None
    ecli = normalize_whitespace(
        meta.xpath("./isVersionOf/@value").get() or meta.xpath("./isVersionOf/value/text()").get()
    ) or None
    if court not in courts:
        return Skipped(court, ecli, f"court: {court}, not {'/'.join(courts)}")
    if not ecli or "ARR" not in ecli:
        return Skipped(court, ecli, f"ECLI: {ecli}, not ARR")

    raw_date = normalize_whitespace(meta.xpath("./date/text()").get())
    date = to_iso_date(raw_date) or raw_date or None

    url = None
    identifiers = meta.xpath("./identifier")
    for ident in identifiers:
        if ident.xpath("@type").get() == "summarised":
            url = normalize_whitespace(ident.xpath("string()").get())
            break
    if not url and identifiers:
        url = normalize_whitespace(identifiers[0].xpath("string()").get()) or None
        logger.warning("No 'summarised' identifier found, using first identifier for %s", ecli)

    abstracts = {"fr": [], "nl": []}
    for abstract in meta.xpath("./abstract"):
        text = normalize_whitespace(abstract.xpath("string()").get())
        lang = abstract.xpath("@lang").get()
        if text and lang in abstracts:
            abstracts[lang].append(text)

    refs = (
        Reference(
            ref.xpath("@type").get(),
            ref.xpath("@lang").get() or "fr",
            normalize_whitespace(ref.xpath("string()").get()),
        )
        for ref in meta.xpath("./reference")
    )
    grouper = fold_references(refs)
    legal_bases, unresolved = resolve_bases(grouper)

    return Judgement(
        ecli=ecli,
        court=court,
        date=date,
        role_number=grouper.role_number,
        url=url,
        abstracts_fr=abstracts["fr"],
        abstracts_nl=abstracts["nl"],
        legal_bases=legal_bases,
        unresolved=unresolved,
        unrecognized=grouper.unrecognized,
    )
