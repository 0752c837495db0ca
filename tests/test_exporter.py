"""
Tests for BankExporter.
"""

import json

import pytest

from scripted_engine.core.reference_resolver.bank_parser import parse_bank
from scripted_engine.core.reference_resolver.bank_serializer import write_bank
from scripted_engine.core.reference_resolver.exporter import BankExporter
from scripted_engine.core.reference_resolver.models import Bank, BankConfig
from scripted_engine.core.reference_resolver.reference_resolver import ReferenceResolver
from scripted_engine.core.reference_resolver.storage import FileBankStorage
from scripted_engine.core.reference_resolver.workspace import Workspace


class TestBankExporter:
    """Test suite for resolved text and JSON exports."""

    @pytest.fixture
    def exporter(self, tmp_path):
        """Exporter over a bank that references another one."""
        config = BankConfig()
        storage = FileBankStorage(tmp_path, config)
        for bank in (
            Bank(1, "One", {1: {1: "2.1.7", 2: "plain"}, 3: {}}),
            Bank(2, "Deux", {1: {7: "X é"}}),
        ):
            storage.write_bank_text(bank.bank_id, write_bank(bank, config).encode("utf-8"))
        return BankExporter(ReferenceResolver(Workspace(storage, config)))

    def test_filenames(self, exporter):
        assert exporter.resolved_filename(1) == "x00001.resolved.txt"
        assert exporter.json_filename(1) == "x00001.json"

    def test_resolved_text_keeps_structure(self, exporter):
        text = exporter.to_resolved_text(1)

        assert text == "x00001\t(One){\n01\n\t0001\tX é\n\t0002\tplain\n03\n}\n"
        assert parse_bank(text) == Bank(1, "One", {1: {1: "X é", 2: "plain"}, 3: {}})

    def test_resolved_text_leaves_bank_untouched(self, exporter):
        exporter.to_resolved_text(1)

        assert exporter.resolver.workspace.get(1).get(1, 1) == "2.1.7"

    def test_to_dict(self, exporter):
        assert exporter.to_dict(1) == {
            "bank": "x00001",
            "id": 1,
            "title": "One",
            "registers": {
                "01": {
                    "0001": {"raw": "2.1.7", "resolved": "X é"},
                    "0002": {"raw": "plain", "resolved": "plain"},
                },
                "03": {},
            },
        }

    def test_to_json(self, exporter):
        document = exporter.to_json(1)

        assert document.endswith("}\n")
        assert "X é" in document
        assert json.loads(document) == exporter.to_dict(1)
