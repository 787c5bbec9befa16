"""
Shared test helpers: sitemap XML / judgement HTML builders and model factories.
"""

from juportal.models import Judgement, LegalBasis, UnresolvedBasis

ECLI = "ECLI:BE:CASS:2023:ARR.20230105.1N.3"
PAGE_URL = f"https://juportal.be/content/{ECLI}/FR"
ELI_CJ = "https://www.ejustice.just.fgov.be/eli/loi/1967/10/10/1967101052/justel"
ELI_CJ_NL = "https://www.ejustice.just.fgov.be/eli/wet/1967/10/10/1967101052/justel"
ELI_CC = "https://www.ejustice.just.fgov.be/eli/loi/1804/03/21/1804032150/justel"
CGI_WET = "https://www.ejustice.just.fgov.be/cgi_wet/change_lg.pl?language=nl&la=N&table_name=wet&cn=1867060801"
CGI_LOI = "https://www.ejustice.just.fgov.be/cgi_loi/change_lg.pl?language=fr&la=F&table_name=loi&cn=1867060801"


def reference(text, type_="OTHER", lang="fr"):
    return type_, lang, text


def sitemap_xml(refs=(), abstracts=(), court="CASS", ecli=ECLI, date="2023-01-05", summarised=True):
    """Judgement sitemap with the given (type, lang, text) references and (lang, text) abstracts."""
    ident_type = "summarised" if summarised else "original"
    abstract_xml = "".join(
        f'<ecli:abstract lang="{lang}">{text}</ecli:abstract>' for lang, text in abstracts
    )
    ref_xml = "".join(
        f'<ecli:reference lang="{lang}" type="{type_}">{text.replace("&", "&amp;")}</ecli:reference>'
        for type_, lang, text in refs
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9" xmlns:ecli="https://e-justice.europa.eu/ecli">
  <url>
    <loc>https://juportal.be/content/{ecli}</loc>
    <ecli:document>
      <ecli:metadata>
        <ecli:identifier type="{ident_type}">{PAGE_URL}</ecli:identifier>
        <ecli:isVersionOf value="{ecli}"><ecli:court>{court}</ecli:court></ecli:isVersionOf>
        <ecli:date>{date}</ecli:date>
        {abstract_xml}
        {ref_xml}
      </ecli:metadata>
    </ecli:document>
  </url>
</urlset>
"""


def sitemap_index_xml(urls):
    locs = "".join(f"<sitemap><loc>{u}</loc></sitemap>" for u in urls)
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{locs}</sitemapindex>
"""


def fiche_html(abstract, lines, legend="Fiche 1", label="Bases légales:"):
    body = "<br/>".join(lines)
    return f"""<fieldset><legend>{legend}</legend>
<div>{abstract}</div>
<table><tr><td><p>{label}</p></td><td><p class="description-notice-table">{body}</p></td></tr></table>
</fieldset>"""


def judgement_html(*fieldsets):
    return "<html><body>" + "".join(fieldsets) + "</body></html>"


def make_judgement(**overrides) -> Judgement:
    defaults = {
        "ecli": ECLI,
        "court": "CASS",
        "date": "2023-01-05",
        "role_number": "C.22.0123.F",
        "url": PAGE_URL,
        "abstracts_fr": ["Le juge apprécie souverainement les faits de la cause."],
        "abstracts_nl": ["De rechter oordeelt onaantastbaar over de feiten van de zaak."],
        "legal_bases": [LegalBasis("1068", ELI_CJ)],
        "unresolved": [],
    }
    defaults.update(overrides)
    return Judgement(**defaults)


def unresolved(article="3", law_key="Loi - 01-01-2000"):
    return UnresolvedBasis(article, law_key)
