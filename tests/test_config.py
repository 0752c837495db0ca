"""
Tests for configuration loading.
"""

import json

import pytest

from scripted_engine.core.reference_resolver.config import (
    DEFAULT_MAX_DEPTH,
    ENV_CONFIG,
    ENV_MAX_DEPTH,
    ENV_OUTPUT_DIR,
    ENV_ROOT,
    load_config,
    load_settings,
    save_config,
)
from scripted_engine.core.reference_resolver.models import BankConfig


class TestBankConfig:
    """Test cases for BankConfig itself."""

    def test_defaults(self):
        config = BankConfig()
        assert (config.prefix, config.base) == ("x", 10)
        assert (config.width_bank, config.width_reg, config.width_addr) == (5, 2, 4)

    def test_keys(self):
        config = BankConfig()
        assert config.bank_key(1) == "x00001"
        assert config.bank_filename(1) == "x00001.txt"
        assert config.reg_key(2) == "02"
        assert config.addr_key(7) == "0007"

    @pytest.mark.parametrize(
        "kwargs",
        [{"prefix": "xy"}, {"prefix": "1"}, {"base": 1}, {"base": 37}, {"width_addr": -1}],
    )
    def test_invalid_values_are_rejected(self, kwargs):
        with pytest.raises(ValueError):
            BankConfig(**kwargs)

    def test_from_dict_falls_back_per_field(self):
        config = BankConfig.from_dict(
            {"prefix": "ab", "base": 99, "widthBank": -1, "widthReg": "3", "widthAddr": True}
        )

        assert config == BankConfig(width_reg=3)

    def test_from_dict_accepts_valid_values(self):
        data = {"prefix": "q", "base": 16, "widthBank": 3, "widthReg": 1, "widthAddr": 2.0}

        assert BankConfig.from_dict(data) == BankConfig(prefix="q", base=16, width_bank=3, width_reg=1, width_addr=2)

    def test_from_dict_with_non_mapping(self):
        assert BankConfig.from_dict(None) == BankConfig()
        assert BankConfig.from_dict([1, 2]) == BankConfig()


class TestLoadConfig:
    """Test cases for load_config/save_config."""

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "config.json") == BankConfig()

    def test_invalid_json_gives_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")

        assert load_config(path) == BankConfig()

    def test_partial_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"base": 16}), encoding="utf-8")

        assert load_config(path) == BankConfig(base=16)

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        config = BankConfig(prefix="b", base=36, width_bank=2, width_reg=0, width_addr=3)

        save_config(path, config)

        assert path.read_text(encoding="utf-8").endswith("}\n")
        assert json.loads(path.read_text(encoding="utf-8"))["widthBank"] == 2
        assert load_config(path) == config


class TestLoadSettings:
    """Test cases for load_settings."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        """Make sure no engine variable leaks in or out of a test."""
        for name in (ENV_ROOT, ENV_OUTPUT_DIR, ENV_CONFIG, ENV_MAX_DEPTH):
            # setenv first so monkeypatch restores "absent" even if .env loading sets it
            monkeypatch.setenv(name, "")
            monkeypatch.delenv(name)

    def test_defaults_under_root(self, tmp_path):
        settings = load_settings(root=tmp_path, env_file=tmp_path / "missing.env")

        assert settings.root == tmp_path
        assert settings.output_dir == tmp_path / "out"
        assert settings.config_path == tmp_path / "config.json"
        assert settings.config == BankConfig()
        assert settings.max_depth == DEFAULT_MAX_DEPTH

    def test_environment_overrides(self, tmp_path, monkeypatch):
        config_path = tmp_path / "elsewhere.json"
        save_config(config_path, BankConfig(base=16))
        monkeypatch.setenv(ENV_ROOT, str(tmp_path / "banks"))
        monkeypatch.setenv(ENV_OUTPUT_DIR, str(tmp_path / "results"))
        monkeypatch.setenv(ENV_CONFIG, str(config_path))
        monkeypatch.setenv(ENV_MAX_DEPTH, "12")

        settings = load_settings(env_file=tmp_path / "missing.env")

        assert settings.root == tmp_path / "banks"
        assert settings.output_dir == tmp_path / "results"
        assert settings.config.base == 16
        assert settings.max_depth == 12

    def test_env_file_is_read(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(f"{ENV_MAX_DEPTH}=7\n", encoding="utf-8")

        settings = load_settings(root=tmp_path, env_file=env_file)

        assert settings.max_depth == 7

    @pytest.mark.parametrize("raw", ["abc", "0", "-3"])
    def test_bad_max_depth_falls_back(self, tmp_path, monkeypatch, raw):
        monkeypatch.setenv(ENV_MAX_DEPTH, raw)

        settings = load_settings(root=tmp_path, env_file=tmp_path / "missing.env")

        assert settings.max_depth == DEFAULT_MAX_DEPTH

    def test_ensure_dirs(self, tmp_path):
        settings = load_settings(root=tmp_path / "banks", env_file=tmp_path / "missing.env")

        settings.ensure_dirs()

        assert settings.root.is_dir()
        assert settings.output_dir.is_dir()
