from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class LegalBasis:
    article: Optional[str]      # article token, "general", or None for a principle
    identifier: str             # canonical ELI or cgi_loi URL
    text_fr: Optional[str] = None
    text_nl: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class UnresolvedBasis:
    article: Optional[str]
    law_key: str                # "Law name - DD-MM-YYYY", or the principle text
    text_fr: Optional[str] = None
    text_nl: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Judgement:
    ecli: str
    court: str
    date: Optional[str]
    role_number: Optional[str]
    url: Optional[str]
    abstracts_fr: List[str] = field(default_factory=list)
    abstracts_nl: List[str] = field(default_factory=list)
    legal_bases: List[LegalBasis] = field(default_factory=list)
    unresolved: List[UnresolvedBasis] = field(default_factory=list)
    unrecognized: List[str] = field(default_factory=list)

    @property
    def abstract_count(self) -> int:
        return max(len(self.abstracts_fr), len(self.abstracts_nl))

    @property
    def has_citations(self) -> bool:
        return bool(self.legal_bases or self.unresolved)


@dataclass
class Skipped:
    court: Optional[str]
    ecli: Optional[str]
    reason: str


@dataclass
class Fiche:
    abstract: str
    legal_bases: List[LegalBasis] = field(default_factory=list)
    unresolved: List[UnresolvedBasis] = field(default_factory=list)
    unrecognized: List[str] = field(default_factory=list)

    @property
    def has_citations(self) -> bool:
        return bool(self.legal_bases or self.unresolved)


@dataclass
class FicheMapping:
    """One abstract (per language) and the legal bases it belongs to."""

    abstract_fr: Optional[str]
    abstract_nl: Optional[str]
    legal_bases: List[LegalBasis] = field(default_factory=list)
    unresolved: List[UnresolvedBasis] = field(default_factory=list)
    low_confidence: bool = False
