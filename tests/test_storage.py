"""
Tests for the directory-backed bank storage.
"""

import pytest

from scripted_engine.core.reference_resolver.models import BankConfig
from scripted_engine.core.reference_resolver.storage import BankStorage, FileBankStorage


class TestFileBankStorage:
    """Test cases for FileBankStorage."""

    @pytest.fixture
    def storage(self, tmp_path):
        """Create a storage rooted in a temporary directory."""
        return FileBankStorage(tmp_path, BankConfig())

    def test_is_a_bank_storage(self, storage):
        assert isinstance(storage, BankStorage)

    def test_bank_path_uses_canonical_key(self, storage, tmp_path):
        assert storage.bank_path(1) == tmp_path / "x00001.txt"
        assert storage.location(1) == str(tmp_path / "x00001.txt")

    def test_write_then_read(self, storage):
        assert not storage.exists(3)

        storage.write_bank_text(3, b"x00003\t(t){\n}\n")

        assert storage.exists(3)
        assert storage.read_bank_text(3) == b"x00003\t(t){\n}\n"

    def test_write_creates_root(self, tmp_path):
        storage = FileBankStorage(tmp_path / "a" / "b")

        storage.write_bank_text(1, b"data")

        assert (tmp_path / "a" / "b" / "x00001.txt").read_bytes() == b"data"

    def test_bank_key_too_long_for_the_file_system(self, storage):
        assert not storage.exists(10 ** 300)

    def test_list_bank_ids_keeps_canonical_names_only(self, storage, tmp_path):
        for name in ("x00002.txt", "x00010.txt", "x1.txt", "y00003.txt", "xzz.txt", "notes.md"):
            (tmp_path / name).write_text("", encoding="utf-8")
        (tmp_path / "x00004.resolved.txt").write_text("", encoding="utf-8")

        assert storage.list_bank_ids() == [2, 10]

    def test_list_bank_ids_without_root(self, tmp_path):
        assert FileBankStorage(tmp_path / "missing").list_bank_ids() == []

    def test_list_bank_ids_in_configured_base(self, tmp_path):
        storage = FileBankStorage(tmp_path, BankConfig(prefix="b", base=16, width_bank=3))
        (tmp_path / "b0ff.txt").write_text("", encoding="utf-8")

        assert storage.list_bank_ids() == [255]


class TestNamedResources:
    """Test cases for @file() resource lookups."""

    def test_present_resource(self, tmp_path):
        (tmp_path / "greeting.txt").write_bytes(b"Hello")

        assert FileBankStorage(tmp_path).read_named_resource("greeting.txt") == b"Hello"

    def test_absent_resource(self, tmp_path):
        storage = FileBankStorage(tmp_path)

        assert storage.read_named_resource("nope.txt") is None
        assert storage.read_named_resource("") is None

    @pytest.mark.parametrize("name", ["a" * 300, "a\x00b"])
    def test_name_rejected_by_the_os(self, tmp_path, name):
        assert FileBankStorage(tmp_path).read_named_resource(name) is None

    def test_directory_is_not_a_resource(self, tmp_path):
        (tmp_path / "sub").mkdir()

        assert FileBankStorage(tmp_path).read_named_resource("sub") is None

    def test_nested_resource(self, tmp_path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "part.txt").write_bytes(b"part")

        assert FileBankStorage(tmp_path).read_named_resource("sub/part.txt") == b"part"

    def test_resource_outside_directory_is_refused(self, tmp_path):
        resources = tmp_path / "resources"
        resources.mkdir()
        (tmp_path / "secret.txt").write_bytes(b"secret")

        storage = FileBankStorage(tmp_path / "banks", resource_dir=resources)

        assert storage.read_named_resource("../secret.txt") is None

    def test_separate_resource_directory(self, tmp_path):
        resources = tmp_path / "resources"
        resources.mkdir()
        (resources / "r.txt").write_bytes(b"r")

        storage = FileBankStorage(tmp_path / "banks", resource_dir=resources)

        assert storage.read_named_resource("r.txt") == b"r"
