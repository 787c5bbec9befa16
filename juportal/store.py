import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

from pymongo import MongoClient

from juportal.citations import GENERAL
from juportal.utility import identifier_to_key

logger = logging.getLogger(__name__)

MISSING_ELI_KEY = "missing_eli"
ERRORS_KEY = "errors"


def ensure_dir(p: Path):
    p.mkdir(parents=True, exist_ok=True)


class JsonBlobStore:
    """One pretty-printed JSON file per key under a directory."""

    def __init__(self, root):
        self.root = Path(root)
        ensure_dir(self.root)

    def path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def load(self, key: str, default=None):
        p = self.path(key)
        if p.exists():
            try:
                return json.loads(p.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning("Could not read %s, starting fresh: %s", p, e)
        return {} if default is None else default

    def save(self, key: str, obj: Any):
        p = self.path(key)
        tmp = p.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(obj, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, p)

    def close(self):
        pass


class MongoBlobStore:
    """Same contract backed by one MongoDB document per key.

    Values are kept as JSON text: article keys such as "5.4.3.4" are not valid
    MongoDB field paths.
    """

    def __init__(self, uri: str, db_name: str, coll_name: str, client: Optional[MongoClient] = None):
        self.client = client or MongoClient(uri, connect=True)
        self.coll = self.client[db_name][coll_name]

    def load(self, key: str, default=None):
        doc = self.coll.find_one({"_id": key})
        if doc and doc.get("payload"):
            return json.loads(doc["payload"])
        return {} if default is None else default

    def save(self, key: str, obj: Any):
        now = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        self.coll.update_one(
            {"_id": key},
            {"$set": {"payload": json.dumps(obj, ensure_ascii=False), "updated_at": now}, "$setOnInsert": {"first_seen": now}},
            upsert=True,
        )

    def close(self):
        self.client.close()


def open_stores(settings):
    """(data_store, meta_store) configured from Scrapy settings."""
    backend = (settings.get("STORE_BACKEND") or "json").lower()
    if backend == "mongo":
        uri = settings.get("MONGO_URI")
        db = settings.get("MONGO_DB")
        client = MongoClient(uri, connect=True)
        return (
            MongoBlobStore(uri, db, settings.get("MONGO_DATA_COLLECTION"), client=client),
            MongoBlobStore(uri, db, settings.get("MONGO_META_COLLECTION"), client=client),
        )
    return JsonBlobStore(settings.get("DATA_DIR")), JsonBlobStore(settings.get("STATE_DIR"))


def merge_abstracts(existing, incoming: Optional[str]):
    """Deduplicated abstract list; legacy scalar values become one-item lists."""
    if isinstance(existing, list):
        arr = list(existing)
    else:
        arr = [existing] if existing else []
    if incoming and incoming not in arr:
        arr.append(incoming)
    return arr or None


def judgement_fields(judgement) -> Dict[str, Any]:
    return {
        "court": judgement.court,
        "date": judgement.date,
        "role_number": judgement.role_number,
        "url": judgement.url,
    }


def merge_record(data: Dict[str, Any], article: str, ecli: str, fields: Dict[str, Any], abstract_fr=None, abstract_nl=None, basis=None):
    existing = data.setdefault(article, {}).get(ecli) or {}
    record = dict(fields)
    record["abstract_fr"] = merge_abstracts(existing.get("abstract_fr"), abstract_fr)
    record["abstract_nl"] = merge_abstracts(existing.get("abstract_nl"), abstract_nl)
    for lang in ("fr", "nl"):
        text = existing.get(f"legal_basis_{lang}") or (getattr(basis, f"text_{lang}", None) if basis else None)
        if text:
            record[f"legal_basis_{lang}"] = text
    data[article][ecli] = record
    return record


def merge_judgement(store, judgement, mapping) -> int:
    """Merge the resolved bases of every mapping entry into the keyed store.

    Returns the number of (identifier, article) records written.
    """
    fields = judgement_fields(judgement)
    written = 0
    for entry in mapping:
        for basis in entry.legal_bases:
            if not basis.identifier:
                continue
            key = identifier_to_key(basis.identifier)
            article = basis.article or GENERAL
            data = store.load(key)
            merge_record(data, article, judgement.ecli, fields, entry.abstract_fr, entry.abstract_nl, basis)
            store.save(key, data)
            written += 1
            logger.debug("Saved | article=%r | %s | ecli=%s", article, key, judgement.ecli)
    return written


def _same_element(a: Dict[str, Any], b: Dict[str, Any]) -> bool:
    return all(a.get(k) == b.get(k) for k in ("ecli", "article", "url", "abstract_fr", "abstract_nl"))


def append_unresolved(store, judgement, mapping) -> int:
    """Queue bases without identifier under their law key for later replay."""
    entries = [(entry, u) for entry in mapping for u in entry.unresolved]
    if not entries:
        return 0
    data = store.load(MISSING_ELI_KEY)
    recorded = 0
    for entry, unresolved in entries:
        element = dict(judgement_fields(judgement), ecli=judgement.ecli, article=unresolved.article,
                       abstract_fr=entry.abstract_fr, abstract_nl=entry.abstract_nl)
        slot = data.setdefault(unresolved.law_key, {"identifier": None, "elements": []})
        if not any(_same_element(e, element) for e in slot["elements"]):
            slot["elements"].append(element)
        recorded += 1
    store.save(MISSING_ELI_KEY, data)
    logger.warning("Recorded %d legal basis element(s) without ELI", recorded)
    return recorded


def append_parse_errors(store, source_url: str, texts) -> int:
    """Record citation texts no pattern matched, once per (source, text)."""
    texts = [t for t in texts or [] if t]
    if not texts:
        return 0
    data = store.load(ERRORS_KEY)
    known = data.setdefault(source_url, [])
    added = 0
    for text in texts:
        if text not in known:
            known.append(text)
            added += 1
    if added:
        store.save(ERRORS_KEY, data)
    return added
