"""Tests for memoria_core.config — models and YAML loader."""

import os
import pytest
from unittest.mock import patch
from pydantic import ValidationError

from memoria_core.config.models import LedgerSettings, MemoriaConfig, StorageConfig
from memoria_core.config.loader import DEFAULT_CONFIG_TEMPLATE, load_config, _expand_env_vars
from memoria_core.storage import MemoryBackend, SQLiteBackend, create_backend


# ── MemoriaConfig defaults ─────────────────────────────────────────


class TestMemoriaConfigDefaults:
    def test_default_log_level(self, sample_config):
        assert sample_config.log_level == "info"

    def test_default_log_format(self, sample_config):
        assert sample_config.log_format == "text"

    def test_default_admin(self, sample_config):
        assert sample_config.ledger.admin == "admin"

    def test_default_hop_bound(self, sample_config):
        assert sample_config.ledger.max_path_hops == 256

    def test_default_storage(self, sample_config):
        assert sample_config.storage.backend == "sqlite"
        assert sample_config.storage.path == ".memoria/ledger.db"


# ── Individual config model validations ─────────────────────────────


class TestLedgerSettings:
    def test_blank_admin_rejected(self):
        with pytest.raises(ValidationError):
            LedgerSettings(admin="   ")

    def test_empty_admin_rejected(self):
        with pytest.raises(ValidationError):
            LedgerSettings(admin="")

    @pytest.mark.parametrize("hops", [0, -1])
    def test_non_positive_hops_rejected(self, hops):
        with pytest.raises(ValidationError):
            LedgerSettings(max_path_hops=hops)

    def test_custom_values(self):
        cfg = LedgerSettings(admin="curator", max_path_hops=32)
        assert cfg.admin == "curator"
        assert cfg.max_path_hops == 32


class TestStorageConfig:
    def test_invalid_backend_rejected(self):
        with pytest.raises(ValidationError):
            StorageConfig(backend="postgres")

    def test_create_memory_backend(self):
        assert isinstance(create_backend(StorageConfig(backend="memory")), MemoryBackend)

    def test_create_sqlite_backend(self, tmp_path):
        backend = create_backend(StorageConfig(path=str(tmp_path / "db" / "ledger.db")))
        try:
            assert isinstance(backend, SQLiteBackend)
            assert (tmp_path / "db" / "ledger.db").exists()
        finally:
            backend.close()


class TestLogSettings:
    def test_invalid_level_rejected(self):
        with pytest.raises(ValidationError):
            MemoriaConfig(log_level="verbose")

    def test_invalid_format_rejected(self):
        with pytest.raises(ValidationError):
            MemoriaConfig(log_format="xml")


# ── _expand_env_vars ────────────────────────────────────────────────


class TestExpandEnvVars:
    def test_expands_string_variable(self):
        with patch.dict(os.environ, {"MY_KEY": "secret123"}):
            assert _expand_env_vars("${MY_KEY}") == "secret123"

    def test_missing_var_becomes_empty(self):
        os.environ.pop("MEMORIA_UNSET_VAR", None)
        assert _expand_env_vars("${MEMORIA_UNSET_VAR}") == ""

    def test_expands_nested_structures(self):
        with patch.dict(os.environ, {"A": "alpha", "B": "beta"}):
            result = _expand_env_vars({"outer": {"inner": "${A}"}, "list": ["${B}"]})
            assert result == {"outer": {"inner": "alpha"}, "list": ["beta"]}

    def test_non_string_passthrough(self):
        assert _expand_env_vars(42) == 42
        assert _expand_env_vars(True) is True
        assert _expand_env_vars(None) is None

    def test_mixed_text_and_var(self):
        with patch.dict(os.environ, {"LEDGER_HOME": "/srv/memoria"}):
            assert _expand_env_vars("${LEDGER_HOME}/ledger.db") == "/srv/memoria/ledger.db"

    def test_fallback_used_when_unset(self):
        os.environ.pop("MEMORIA_UNSET_VAR", None)
        assert _expand_env_vars("${MEMORIA_UNSET_VAR:-curator}") == "curator"

    def test_fallback_ignored_when_set(self):
        with patch.dict(os.environ, {"MEMORIA_ADMIN": "ops"}):
            assert _expand_env_vars("${MEMORIA_ADMIN:-curator}") == "ops"


# ── load_config ─────────────────────────────────────────────────────


class TestLoadConfig:
    def test_returns_defaults_when_no_file_exists(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "fakehome")
        config = load_config()
        assert config.ledger.admin == "admin"
        assert config.log_level == "info"

    def test_loads_valid_yaml(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "memoria.yaml").write_text(
            "ledger:\n  admin: curator\nstorage:\n  backend: memory\nlog_level: debug\n"
        )
        monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "fakehome")
        config = load_config()
        assert config.ledger.admin == "curator"
        assert config.storage.backend == "memory"
        assert config.log_level == "debug"

    def test_expands_env_in_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("MEMORIA_ADMIN", "ops-team")
        (tmp_path / "memoria.yaml").write_text('ledger:\n  admin: "${MEMORIA_ADMIN}"\n')
        monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "fakehome")
        assert load_config().ledger.admin == "ops-team"

    def test_raises_on_invalid_yaml(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "memoria.yaml").write_text("  bad:\nyaml: [unterminated")
        monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "fakehome")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config()

    def test_raises_on_invalid_config_values(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "memoria.yaml").write_text("storage:\n  backend: redis\n")
        monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "fakehome")
        with pytest.raises(ValueError, match="Invalid config"):
            load_config()

    def test_cli_path_takes_priority(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "memoria.yaml").write_text("ledger:\n  admin: local\n")
        cli_file = tmp_path / "custom.yaml"
        cli_file.write_text("ledger:\n  admin: from-cli\n")
        assert load_config(cli_path=str(cli_file)).ledger.admin == "from-cli"

    def test_user_global_config_used_as_fallback(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        fake_home = tmp_path / "fakehome"
        (fake_home / ".memoria").mkdir(parents=True)
        (fake_home / ".memoria" / "config.yaml").write_text("log_format: json\n")
        monkeypatch.setattr("pathlib.Path.home", lambda: fake_home)
        assert load_config().log_format == "json"

    def test_empty_file_skipped(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "memoria.yaml").write_text("")
        fake_home = tmp_path / "fakehome"
        (fake_home / ".memoria").mkdir(parents=True)
        (fake_home / ".memoria" / "config.yaml").write_text("log_level: error\n")
        monkeypatch.setattr("pathlib.Path.home", lambda: fake_home)
        assert load_config().log_level == "error"

    def test_missing_cli_path_raises(self, tmp_path):
        with pytest.raises(ValueError, match="not found"):
            load_config(cli_path=str(tmp_path / "nope.yaml"))

    def test_non_mapping_top_level_raises(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "memoria.yaml").write_text("- a\n- b\n")
        monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "fakehome")
        with pytest.raises(ValueError, match="top level must be a mapping"):
            load_config()

    def test_unreadable_file_raises(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "memoria.yaml").mkdir()
        monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "fakehome")
        with pytest.raises(ValueError, match="Cannot read config"):
            load_config()


def test_default_template_is_loadable(tmp_path):
    cfg_file = tmp_path / "memoria.yaml"
    cfg_file.write_text(DEFAULT_CONFIG_TEMPLATE)
    config = load_config(cli_path=str(cfg_file))
    assert config == MemoriaConfig()
