"""
Unit tests for text helpers and law identifier normalization.
"""

import pytest

from juportal.utility import (
    date_from_sitemap_url,
    extract_date,
    extract_law_key,
    identifier_to_key,
    normalize_eli,
    normalize_identifier,
    normalize_legacy_url,
    normalize_whitespace,
    to_iso_date,
    unique_preserve,
)
from tests.helpers import CGI_LOI, CGI_WET, ELI_CJ, ELI_CJ_NL


class TestTextHelpers:

    def test_normalize_whitespace(self) -> None:
        assert normalize_whitespace("  Code \n judiciaire\t ") == "Code judiciaire"
        assert normalize_whitespace(None) == ""

    def test_unique_preserve(self) -> None:
        assert unique_preserve([3, 1, 3, 2, 1]) == [3, 1, 2]

    @pytest.mark.parametrize("raw, expected", [
        ("2023-01-05", "2023-01-05"),
        ("05-01-2023", "2023-01-05"),
        ("05/01/2023", "2023-01-05"),
        ("janvier 2023", None),
        ("", None),
    ])
    def test_to_iso_date(self, raw, expected) -> None:
        assert to_iso_date(raw) == expected

    def test_extract_date(self) -> None:
        assert extract_date("Code judiciaire - 10-10-1967 - Art. 1068 - 30") == "10-10-1967"
        assert extract_date("Legaliteitsbeginsel") is None

    def test_extract_law_key(self) -> None:
        text = "Gerechtelijk Wetboek - 10-10-1967 - Art. 1068 - 30"
        assert extract_law_key(text) == "Gerechtelijk Wetboek - 10-10-1967"

    def test_extract_law_key_without_date_is_whole_text(self) -> None:
        assert extract_law_key("Règlement - Art. 41") == "Règlement - Art. 41"

    def test_date_from_sitemap_url(self) -> None:
        assert date_from_sitemap_url("https://juportal.be/sitemap/2023/01/05/index_1.xml") == "2023-01-05"
        assert date_from_sitemap_url("https://juportal.be/sitemap.xml") == "0000-00-00"


class TestIdentifiers:

    def test_dutch_eli_type_becomes_french(self) -> None:
        assert normalize_eli(ELI_CJ_NL) == ELI_CJ

    def test_other_eli_types(self) -> None:
        assert normalize_eli(
            "https://www.ejustice.just.fgov.be/eli/decreet/2005/06/24/2005035890/justel"
        ) == "https://www.ejustice.just.fgov.be/eli/decret/2005/06/24/2005035890/justel"

    def test_french_eli_unchanged(self) -> None:
        assert normalize_eli(ELI_CJ) == ELI_CJ

    def test_cgi_wet_rewritten_to_cgi_loi(self) -> None:
        assert normalize_legacy_url(CGI_WET) == CGI_LOI

    def test_cgi_loi_unchanged(self) -> None:
        assert normalize_legacy_url(CGI_LOI) == CGI_LOI

    @pytest.mark.parametrize("url", [
        "https://www.ejustice.just.fgov.be/cgi/article.pl?cn=1",
        "not a url",
        "",
        None,
    ])
    def test_unrecognized_legacy_url(self, url) -> None:
        assert normalize_legacy_url(url) is None

    @pytest.mark.parametrize("raw", [ELI_CJ_NL, ELI_CJ, CGI_WET, CGI_LOI])
    def test_normalize_identifier_is_idempotent(self, raw) -> None:
        once = normalize_identifier(raw)
        assert once is not None
        assert normalize_identifier(once) == once

    @pytest.mark.parametrize("raw", ["", "   ", "Code civil", None])
    def test_normalize_identifier_rejects_non_urls(self, raw) -> None:
        assert normalize_identifier(raw) is None

    def test_identifier_to_key(self) -> None:
        assert identifier_to_key(ELI_CJ) == "eli_loi_1967_10_10_1967101052_justel"
        assert identifier_to_key(CGI_LOI) == "cgi_loi_loi_1867060801"
