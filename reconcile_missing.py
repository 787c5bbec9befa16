"""Replay citations queued without identifier once one has been filled in.

Edit missing_eli.json (or the "missing_eli" document of the meta collection)
to set "identifier" on an entry, then run:

    python reconcile_missing.py
"""
import argparse
import logging
import os
import sys
from typing import Any, Dict

from scrapy.utils.project import get_project_settings

from juportal.citations import GENERAL, normalize_article_number
from juportal.store import MISSING_ELI_KEY, merge_record, open_stores
from juportal.utility import identifier_to_key, normalize_identifier

logging.basicConfig(
    level=os.getenv("RECONCILE_LOGLEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] %(message)s"
)
logger = logging.getLogger("reconcile")


def element_article(element: Dict[str, Any]):
    article = element.get("article")
    if not article or article == GENERAL:
        return GENERAL
    return normalize_article_number(article) or article


def reconcile(data_store, meta_store):
    """Merge every queued element whose entry has an identifier.

    Returns (entries, elements) replayed. Entries with an unusable identifier
    are left in place.
    """
    missing = meta_store.load(MISSING_ELI_KEY)
    if not missing:
        logger.info("No missing ELI entries found")
        return 0, 0

    entries = elements = 0
    for law_key, entry in missing.items():
        if not entry or not entry.get("elements") or not entry.get("identifier"):
            continue
        identifier = normalize_identifier(entry["identifier"])
        if not identifier:
            logger.warning("Invalid ELI/URL for missing key %r: %s", law_key, entry["identifier"])
            continue

        key = identifier_to_key(identifier)
        data = data_store.load(key)
        for element in entry["elements"]:
            fields = {k: element.get(k) for k in ("court", "date", "role_number", "url")}
            merge_record(data, element_article(element), element.get("ecli"), fields,
                         element.get("abstract_fr"), element.get("abstract_nl"))
            elements += 1
        data_store.save(key, data)
        entry["elements"] = []
        entries += 1

    meta_store.save(MISSING_ELI_KEY, missing)
    logger.info("Processed missing ELI entries: %d key(s), %d element(s) reintegrated", entries, elements)
    return entries, elements


def main():
    ap = argparse.ArgumentParser(description="Reintegrate citations whose ELI was filled in missing_eli.")
    ap.add_argument("--data-dir", help="Override DATA_DIR")
    ap.add_argument("--state-dir", help="Override STATE_DIR")
    args = ap.parse_args()

    settings = get_project_settings()
    if args.data_dir:
        settings.set("DATA_DIR", args.data_dir)
    if args.state_dir:
        settings.set("STATE_DIR", args.state_dir)

    try:
        data_store, meta_store = open_stores(settings)
    except Exception as e:
        logger.error("Store initialisation failed: %s", e)
        sys.exit(2)

    try:
        reconcile(data_store, meta_store)
    finally:
        data_store.close()
        meta_store.close()


if __name__ == "__main__":
    main()
