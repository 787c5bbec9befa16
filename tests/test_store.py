"""
Unit tests for blob stores and record merging.
"""

import json
import logging
from unittest.mock import MagicMock

from scrapy.settings import Settings

from juportal.models import FicheMapping, LegalBasis
from juportal.store import (
    ERRORS_KEY,
    MISSING_ELI_KEY,
    JsonBlobStore,
    MongoBlobStore,
    append_parse_errors,
    append_unresolved,
    merge_abstracts,
    merge_judgement,
    open_stores,
)
from tests.helpers import CGI_LOI, ECLI, ELI_CC, ELI_CJ, make_judgement, unresolved

CJ_KEY = "eli_loi_1967_10_10_1967101052_justel"


def mapping(*bases, abstract_fr="Sommaire.", abstract_nl="Samenvatting.", missing=()):
    return [FicheMapping(abstract_fr, abstract_nl, legal_bases=list(bases), unresolved=list(missing))]


class TestJsonBlobStore:

    def test_missing_key_loads_default(self, tmp_path) -> None:
        store = JsonBlobStore(tmp_path / "data")
        assert store.load("nothing") == {}
        assert store.load("nothing", default=[]) == []

    def test_save_then_load(self, tmp_path) -> None:
        store = JsonBlobStore(tmp_path / "data")
        store.save("k", {"5.4.3.4": {"ecli": "é"}})
        assert store.load("k") == {"5.4.3.4": {"ecli": "é"}}
        assert sorted(p.name for p in (tmp_path / "data").iterdir()) == ["k.json"]

    def test_corrupt_file_starts_fresh(self, tmp_path, caplog) -> None:
        store = JsonBlobStore(tmp_path)
        store.path("k").write_text("{not json", encoding="utf-8")
        with caplog.at_level(logging.WARNING):
            assert store.load("k") == {}
        assert "starting fresh" in caplog.text


class TestMongoBlobStore:

    def test_save_upserts_json_payload(self) -> None:
        client = MagicMock()
        store = MongoBlobStore("mongodb://localhost", "db", "data", client=client)
        store.save("k", {"5.4.3.4": 1})
        (query, update), kwargs = store.coll.update_one.call_args
        assert query == {"_id": "k"}
        assert json.loads(update["$set"]["payload"]) == {"5.4.3.4": 1}
        assert "first_seen" in update["$setOnInsert"]
        assert kwargs == {"upsert": True}

    def test_load(self) -> None:
        client = MagicMock()
        store = MongoBlobStore("mongodb://localhost", "db", "data", client=client)
        store.coll.find_one.return_value = {"_id": "k", "payload": '{"a": 1}'}
        assert store.load("k") == {"a": 1}
        store.coll.find_one.return_value = None
        assert store.load("k") == {}

    def test_close_closes_client(self) -> None:
        client = MagicMock()
        MongoBlobStore("mongodb://localhost", "db", "data", client=client).close()
        client.close.assert_called_once()


def test_open_stores_defaults_to_json(tmp_path) -> None:
    settings = Settings({"STORE_BACKEND": "json", "DATA_DIR": str(tmp_path / "d"), "STATE_DIR": str(tmp_path / "s")})
    data, meta = open_stores(settings)
    assert isinstance(data, JsonBlobStore) and data.root == tmp_path / "d"
    assert isinstance(meta, JsonBlobStore) and meta.root == tmp_path / "s"


class TestMergeJudgement:

    def test_merge_abstracts(self) -> None:
        assert merge_abstracts(None, "a") == ["a"]
        assert merge_abstracts("a", "b") == ["a", "b"]
        assert merge_abstracts(["a"], "a") == ["a"]
        assert merge_abstracts(None, None) is None

    def test_records_keyed_by_identifier_article_and_ecli(self, data_store) -> None:
        judgement = make_judgement()
        bases = [LegalBasis("1068", ELI_CJ, "Code judiciaire - 10-10-1967 - Art. 1068 - 30"), LegalBasis("193", CGI_LOI)]
        assert merge_judgement(data_store, judgement, mapping(*bases)) == 2

        record = data_store.load(CJ_KEY)["1068"][ECLI]
        assert record["court"] == "CASS"
        assert record["date"] == "2023-01-05"
        assert record["role_number"] == "C.22.0123.F"
        assert record["abstract_fr"] == ["Sommaire."]
        assert record["abstract_nl"] == ["Samenvatting."]
        assert record["legal_basis_fr"] == "Code judiciaire - 10-10-1967 - Art. 1068 - 30"
        assert "legal_basis_nl" not in record
        assert ECLI in data_store.load("cgi_loi_loi_1867060801")["193"]

    def test_second_fiche_accumulates_abstracts(self, data_store) -> None:
        judgement = make_judgement()
        merge_judgement(data_store, judgement, mapping(LegalBasis("1068", ELI_CJ, "first")))
        merge_judgement(data_store, judgement, mapping(LegalBasis("1068", ELI_CJ, "second"), abstract_fr="Autre."))
        record = data_store.load(CJ_KEY)["1068"][ECLI]
        assert record["abstract_fr"] == ["Sommaire.", "Autre."]
        assert record["abstract_nl"] == ["Samenvatting."]
        assert record["legal_basis_fr"] == "first"

    def test_general_and_principle_articles(self, data_store) -> None:
        merge_judgement(data_store, make_judgement(), mapping(LegalBasis("general", ELI_CC), LegalBasis(None, ELI_CJ)))
        assert ECLI in data_store.load("eli_loi_1804_03_21_1804032150_justel")["general"]
        assert ECLI in data_store.load(CJ_KEY)["general"]

    def test_bases_without_identifier_are_not_written(self, data_store) -> None:
        assert merge_judgement(data_store, make_judgement(), mapping(LegalBasis("1", ""))) == 0


class TestQueues:

    def test_append_unresolved_deduplicates(self, data_store) -> None:
        judgement = make_judgement()
        entry = mapping(missing=[unresolved("3"), unresolved("3")])
        assert append_unresolved(data_store, judgement, entry) == 2
        append_unresolved(data_store, judgement, entry)

        slot = data_store.load(MISSING_ELI_KEY)["Loi - 01-01-2000"]
        assert slot["identifier"] is None
        assert len(slot["elements"]) == 1
        element = slot["elements"][0]
        assert element["ecli"] == ECLI
        assert element["article"] == "3"
        assert element["abstract_fr"] == "Sommaire."

    def test_append_unresolved_without_entries(self, data_store) -> None:
        assert append_unresolved(data_store, make_judgement(), mapping()) == 0
        assert not data_store.path(MISSING_ELI_KEY).exists()

    def test_append_parse_errors(self, meta_store) -> None:
        assert append_parse_errors(meta_store, "https://juportal.be/s.xml", ["Vu la note", "", "Vu la note"]) == 1
        assert append_parse_errors(meta_store, "https://juportal.be/s.xml", ["Vu la note"]) == 0
        assert meta_store.load(ERRORS_KEY) == {"https://juportal.be/s.xml": ["Vu la note"]}
