import re
from datetime import datetime
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

# Dutch document types found in Belgian ELI paths and cgi table names, mapped
# to the French form every stored identifier uses.
ELI_TYPE_NL_TO_FR = {
    "wet": "loi",
    "grondwet": "constitution",
    "decreet": "decret",
    "ordonnantie": "ordonnance",
    "bijzondere-wet": "loi-speciale",
    "wetboek": "code",
    "besluit": "arrete",
}

DATE_RE = re.compile(r"\d{2}-\d{2}-\d{4}")
LAW_KEY_RE = re.compile(r"^(.*?-\s*\d{2}-\d{2}-\d{4})")
ELI_TYPE_RE = re.compile(r"/eli/([^/]+)/")


def normalize_whitespace(text: Optional[str]):
    return re.sub(r"\s+", " ", text or "").strip()


def unique_preserve(seq):
    seen = set()
    out = []
    for x in seq:
        if x not in seen:
            seen.add(x)
            out.append(x)
    return out


def to_iso_date(raw: str):
    if not raw:
        return None
    raw = raw.strip()
    for fmt in ("%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y"):
        try:
            return datetime.strptime(raw, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return None


def extract_date(text: str):
    """First DD-MM-YYYY date of a citation, used to pair FR and NL texts."""
    m = DATE_RE.search(text or "")
    return m.group(0) if m else None


def extract_law_key(text: str):
    """'Gerechtelijk Wetboek - 10-10-1967 - Art. 1068 - 30' -> 'Gerechtelijk Wetboek - 10-10-1967'"""
    if not text:
        return text
    m = LAW_KEY_RE.match(text)
    return m.group(1).strip() if m else text


def date_from_sitemap_url(url: str):
    m = re.search(r"/(\d{4})/(\d{2})/(\d{2})/", url or "")
    if m:
        return f"{m.group(1)}-{m.group(2)}-{m.group(3)}"
    return "0000-00-00"


def normalize_eli(eli: Optional[str]):
    if not eli:
        return eli

    def _fr(m):
        return f"/eli/{ELI_TYPE_NL_TO_FR.get(m.group(1), m.group(1))}/"

    return ELI_TYPE_RE.sub(_fr, eli, count=1)


def normalize_legacy_url(url: Optional[str]):
    """Rewrite a cgi_wet law URL to its cgi_loi form.

    cgi_loi URLs are returned unchanged. Anything that is not a cgi_loi/cgi_wet
    URL returns None so the caller can discard it.
    """
    if not url:
        return None
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    if "cgi_loi" not in parsed.path and "cgi_wet" not in parsed.path:
        return None
    if "cgi_wet" not in parsed.path:
        return url

    params = []
    for k, v in parse_qsl(parsed.query, keep_blank_values=True):
        if k == "language" and v == "nl":
            v = "fr"
        elif k == "la" and v == "N":
            v = "F"
        elif k == "table_name":
            v = ELI_TYPE_NL_TO_FR.get(v, v)
        params.append((k, v))
    return urlunparse(parsed._replace(path=parsed.path.replace("cgi_wet", "cgi_loi"), query=urlencode(params)))


def normalize_identifier(raw: Optional[str]):
    """Canonical form of an ELI or legacy law URL, or None when unusable."""
    if not raw:
        return None
    raw = raw.strip()
    if "/eli/" in raw:
        return normalize_eli(raw)
    if raw.startswith(("http://", "https://")):
        return normalize_legacy_url(raw)
    return None


def identifier_to_key(identifier: str):
    """Store key of a canonical identifier.

    https://www.ejustice.just.fgov.be/eli/loi/1984/06/28/1984900065/justel
      -> eli_loi_1984_06_28_1984900065_justel
    https://www.ejustice.just.fgov.be/cgi_loi/change_lg.pl?table_name=loi&cn=1966121931
      -> cgi_loi_loi_1966121931
    """
    parsed = urlparse(identifier or "")
    if parsed.scheme and parsed.netloc:
        if "cgi_loi" in parsed.path:
            query = dict(parse_qsl(parsed.query))
            return f"cgi_loi_{query.get('table_name') or 'loi'}_{query.get('cn') or 'unknown'}"
        return parsed.path.lstrip("/").replace("/", "_")
    return re.sub(r"[^A-Za-z0-9._-]", "_", identifier or "")
