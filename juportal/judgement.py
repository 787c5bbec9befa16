import logging
import re
from typing import List

from bs4 import BeautifulSoup
from bs4.element import Tag

from juportal.citations import CitationKind, match_citation
from juportal.models import Fiche, LegalBasis, UnresolvedBasis
from juportal.utility import normalize_eli, normalize_legacy_url, normalize_whitespace

logger = logging.getLogger(__name__)

LEGAL_BASES_LABELS = ("Bases légales:", "Wettelijke bepalingen:")

BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)


def _line_identifier(fragment: BeautifulSoup):
    eli = fragment.select_one('a[href*="/eli/"]')
    if eli is not None and eli.get("href"):
        return normalize_eli(eli["href"])
    legacy = fragment.select_one('a[href*="cgi_loi"], a[href*="cgi_wet"]')
    if legacy is not None and legacy.get("href"):
        return normalize_legacy_url(legacy["href"])
    return None


def parse_citation_line(fiche: Fiche, fragment_html: str):
    """Add the bases cited on one <br>-separated line to the fiche.

    Unlike the sitemap references, each line carries its own identifier link.
    """
    fragment = BeautifulSoup(fragment_html, "lxml")
    text = normalize_whitespace(fragment.get_text(" "))
    if not text:
        return

    identifier = _line_identifier(fragment)
    match = match_citation(text)
    if match.kind in (CitationKind.ARTICLE, CitationKind.NO_ARTICLE):
        logger.debug("Legal basis parsed | raw=%r | articles=%s | eli=%s", text, match.articles, identifier or "MISSING")
        for article in match.articles:
            if identifier:
                fiche.legal_bases.append(LegalBasis(article, identifier))
            else:
                fiche.unresolved.append(UnresolvedBasis(article, match.law_key))
    elif match.kind is CitationKind.PRINCIPLE:
        logger.debug("Legal principle | raw=%r | no ELI", text)
        fiche.unresolved.append(UnresolvedBasis(None, text))
    else:
        logger.warning("Could not extract article from legal basis text: %r", text)
        fiche.unrecognized.append(text)


def _legal_bases_cells(fieldset: Tag):
    for tr in fieldset.find_all("tr"):
        tds = tr.find_all("td", recursive=False)
        if len(tds) < 2:
            continue
        label_p = tds[0].find("p")
        label = label_p.get_text(strip=True) if label_p else ""
        if label not in LEGAL_BASES_LABELS:
            continue
        desc = tds[1].find("p", class_="description-notice-table")
        if desc is not None:
            yield desc


def parse_judgement_html(html: str) -> List[Fiche]:
    """Fiches of a judgement page, in document order.

    Each "Fiche N" fieldset holds one abstract and a legal bases row.
    """
    soup = BeautifulSoup(html, "lxml")
    fiches = []
    for fieldset in soup.find_all("fieldset"):
        legend = fieldset.find("legend")
        if legend is None or not legend.get_text(strip=True).startswith("Fiche"):
            continue
        abstract_div = fieldset.find("div", recursive=False)
        abstract = normalize_whitespace(abstract_div.get_text(" ")) if abstract_div else ""
        if not abstract:
            continue

        fiche = Fiche(abstract=abstract)
        for desc in _legal_bases_cells(fieldset):
            for fragment_html in BR_RE.split(desc.decode_contents()):
                parse_citation_line(fiche, fragment_html)
        fiches.append(fiche)
    return fiches
