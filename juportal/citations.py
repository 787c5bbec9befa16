"""Legal-basis citation matching and article number normalization.

A citation line, once whitespace-collapsed, is tried against an ordered list of
matchers; the first one that fires decides what kind of reference it is:

    Code judiciaire - 10-10-1967 - Art. 1068, al. 2 - 30     article reference
    L. du 15 décembre 1980 - 15-12-1980 - 30 Lien ELI ...    law without article
    Principe général du droit relatif aux droits de la défense   legal principle

The article part is then split and normalized by ``parse_article_numbers``.
"""
import enum
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from juportal.utility import extract_law_key, normalize_whitespace, unique_preserve

GENERAL = "general"

_ART = r"(?:.*?\s+)?(?:[ld]')?A(?:r?t+|r)\.\s*"

# "... - DD-MM-YYYY - [prefix] Art. <articles> - NN [suffix]". The counter is
# always 2+ digits so "577-7" stays an article number.
RE_ART_REF_WITH_COUNTER = re.compile(r"\d{2}-\d{2}-\d{4}\s*-\s*" + _ART + r"(.+?)\s*-\s*\d{2,}\b.*$", re.I)
RE_ART_REF_NO_COUNTER = re.compile(r"\d{2}-\d{2}-\d{4}\s*-\s*" + _ART + r"(.+?)\s*$", re.I)
# "Règlement d'organisation ... - Art. 41, 1°, 4°"
RE_ART_REF_NO_DATE = re.compile(r"\s*-\s*" + _ART + r"(.+?)\s*$", re.I)
# "Directive 2014/41/UE ... - 03-04-2014" or "... - 15-12-1980 - 30 Lien ELI No pub 1980121550"
RE_REF_NO_ART = re.compile(r"\d{2}-\d{2}-\d{4}\s*(?:-\s*\d+\b.*)?$", re.I)
# "Principe général du droit ...", "Algemeen rechtsbeginsel ...", "Legaliteitsbeginsel"
RE_LEGAL_PRINCIPLE = re.compile(r"^(Principe général du droit|(?:\w+\s+)?\w*beginsel)\b", re.I)

RE_INTERNATIONAL = re.compile(
    r"\b(?:(?:conventions?|conventie|verdrag(?:en)?|trait[ée]s?|protocol(?:es?)?|pactes?|chartes?|handvest"
    r"|directives?|richtlijn(?:en)?)\b"
    r"|r[èe]glement\s*\((?:CE|UE|CEE)\)|verordening\s*\((?:EG|EU|EEG)\))",
    re.I,
)
RE_DOMESTIC_AGREEMENT = re.compile(r"\bconvention\s+collective\b|\bcollectieve\s+arbeidsovereenkomst\b", re.I)

LATIN_SUFFIX = r"(?i:bis|ter|quater|quinquies|sexies|septies|octies|nonies|decies)"

RE_SPLIT = re.compile(r",\s*(?=[0-9]{2,})|\s+(?:et|en)\s+(?=[0-9])", re.I)
RE_QUALIFIER = re.compile(r"\s*(?:§|\balinéa|\bal\.|\blid)\s*\d+.*$", re.I)
RE_ORDINAL = re.compile(r"^([0-9]+)(?:ière|ième|ème|ère|re|ste|de|nd|er|e)\b", re.I)
RE_SUB_ITEM = re.compile(r"^\d+\s*°")

RE_LETTER_PREFIX = re.compile(r"^([A-Z]{1,3})\s*([0-9]+(?:[/.-][0-9]+)*" + LATIN_SUFFIX + r"?)\b")
RE_ROMAN_DOT = re.compile(r"^([IVXLCDM]+\.[0-9]+" + LATIN_SUFFIX + r"?)\b")
RE_DOTTED = re.compile(r"^([0-9]+)((?:\.[0-9]+)+)(" + LATIN_SUFFIX + r"?)\b")
RE_STANDARD = re.compile(r"^([0-9]+(?:[:/-][0-9]+)*" + LATIN_SUFFIX + r"?)\b")


class CitationKind(enum.Enum):
    ARTICLE = "article"
    NO_ARTICLE = "no-article"
    PRINCIPLE = "principle"
    UNRECOGNIZED = "unrecognized"


@dataclass
class CitationMatch:
    kind: CitationKind
    text: str
    law_key: Optional[str] = None
    articles_raw: Optional[str] = None
    articles: List[Optional[str]] = field(default_factory=list)


def _article_matcher(pattern: re.Pattern, undated: bool = False) -> Callable[[str], Optional[CitationMatch]]:
    def match(text: str):
        m = pattern.search(text)
        if not m:
            return None
        raw = m.group(1).strip()
        articles = parse_article_numbers(raw, is_international(text))
        if not articles:
            # "Art. unique", "Art. premier": let the remaining matchers decide
            return None
        law_key = extract_law_key(text)
        if undated and law_key == text:
            # "Règlement X - Art. 41" and "Règlement X - Art. 42" share "Règlement X"
            law_key = text[:m.start()].strip() or text
        return CitationMatch(
            kind=CitationKind.ARTICLE,
            text=text,
            law_key=law_key,
            articles_raw=raw,
            articles=articles,
        )

    return match


def _match_no_article(text: str):
    if not RE_REF_NO_ART.search(text):
        return None
    return CitationMatch(CitationKind.NO_ARTICLE, text, law_key=extract_law_key(text), articles=[GENERAL])


def _match_principle(text: str):
    if not RE_LEGAL_PRINCIPLE.match(text):
        return None
    return CitationMatch(CitationKind.PRINCIPLE, text, law_key=text, articles=[None])


# Priority order matters: the first matcher returning a result wins.
MATCHERS = [
    _article_matcher(RE_ART_REF_WITH_COUNTER),
    _article_matcher(RE_ART_REF_NO_COUNTER),
    _article_matcher(RE_ART_REF_NO_DATE, undated=True),
    _match_no_article,
    _match_principle,
]


def match_citation(text: str) -> CitationMatch:
    text = normalize_whitespace(text)
    if text:
        for matcher in MATCHERS:
            result = matcher(text)
            if result is not None:
                return result
    return CitationMatch(CitationKind.UNRECOGNIZED, text)


def is_international(text: str) -> bool:
    text = text or ""
    if RE_DOMESTIC_AGREEMENT.search(text):
        return False
    return bool(RE_INTERNATIONAL.search(text))


def normalize_article_number(chunk: str, international: bool = False) -> str:
    """Reduce one article chunk to its article token, or '' if there is none.

    "14, § 7" -> "14", "1er" -> "1", "L 1124-17" -> "L1124-17", "XX.194",
    "3:1", "23/1", "235bis", "5.4.3.4" (kept), "6.3" -> "6" for treaties.
    """
    text = re.sub(r",.*$", "", chunk or "")
    text = RE_QUALIFIER.sub("", text)
    text = RE_ORDINAL.sub(r"\1", text.strip()).strip()
    if not text or RE_SUB_ITEM.match(text):
        return ""

    m = RE_LETTER_PREFIX.match(text)
    if m:
        return m.group(1) + m.group(2)

    m = RE_ROMAN_DOT.match(text)
    if m:
        return m.group(1)

    m = RE_DOTTED.match(text)
    if m:
        head, rest, suffix = m.groups()
        if international and rest.count(".") == 1:
            # paragraph number of a treaty article, not a subdivision
            return head
        return head + rest + suffix

    m = RE_STANDARD.match(text)
    return m.group(1) if m else ""


def parse_article_numbers(raw: str, international: bool = False) -> List[str]:
    text = normalize_whitespace(raw)
    if not text:
        return []

    chunks = [normalize_article_number(c, international) for c in RE_SPLIT.split(text)]
    articles = []
    highest = None
    for art in unique_preserve(a for a in chunks if a):
        if art.isdigit():
            # articles are cited in ascending order; a smaller bare number is
            # a sub-item that lost its qualifier
            if highest is not None and int(art) < highest:
                continue
            highest = int(art)
        articles.append(art)
    return articles
