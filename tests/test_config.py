"""
Tests for engine configuration loading.
"""

import pytest

from vemcap.config import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    EngineConfig,
    EngineConfigError,
    load_engine_config,
    resolve_config_path,
)


@pytest.fixture
def config_file(tmp_path):
    """Write a config file and return its path."""
    def _write(text):
        path = tmp_path / "vemcap.yaml"
        path.write_text(text)
        return path
    return _write


class TestEngineConfig:
    """Tests for EngineConfig validation."""

    def test_defaults(self):
        cfg = EngineConfig()
        assert cfg.max_workers is None
        assert cfg.partitions_per_worker == 4
        assert cfg.thread_name_prefix == "vemcap"

    @pytest.mark.parametrize("value", [0, -2, "4", 2.5, True])
    def test_invalid_max_workers(self, value):
        with pytest.raises(EngineConfigError):
            EngineConfig(max_workers=value)

    @pytest.mark.parametrize("value", [0, -1, None])
    def test_invalid_partitions_per_worker(self, value):
        with pytest.raises(EngineConfigError):
            EngineConfig(partitions_per_worker=value)

    def test_empty_thread_prefix_rejected(self):
        with pytest.raises(EngineConfigError):
            EngineConfig(thread_name_prefix="")

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(EngineConfigError, match="threshold"):
            EngineConfig.from_dict({"threshold": 128})

    def test_from_dict_none_gives_defaults(self):
        assert EngineConfig.from_dict(None) == EngineConfig()

    def test_round_trip_dict(self):
        cfg = EngineConfig(max_workers=3, partitions_per_worker=2, thread_name_prefix="pool")
        assert EngineConfig.from_dict(cfg.to_dict()) == cfg

    def test_config_error_is_value_error(self):
        assert issubclass(EngineConfigError, ValueError)


class TestLoadEngineConfig:
    """Tests for load_engine_config()."""

    def test_packaged_default(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert resolve_config_path() == DEFAULT_CONFIG_PATH
        assert load_engine_config() == EngineConfig()

    def test_explicit_path(self, config_file):
        path = config_file("engine:\n  max_workers: 2\n  partitions_per_worker: 8\n")
        cfg = load_engine_config(path)
        assert cfg.max_workers == 2
        assert cfg.partitions_per_worker == 8

    def test_env_var_path(self, config_file, monkeypatch):
        path = config_file("engine:\n  thread_name_prefix: from-env\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        assert load_engine_config().thread_name_prefix == "from-env"

    def test_explicit_path_beats_env_var(self, config_file, monkeypatch, tmp_path):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "elsewhere.yaml"))
        path = config_file("engine:\n  max_workers: 1\n")
        assert load_engine_config(path).max_workers == 1

    def test_empty_file_gives_defaults(self, config_file):
        assert load_engine_config(config_file("")) == EngineConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_engine_config(tmp_path / "missing.yaml")

    def test_non_mapping_root(self, config_file):
        with pytest.raises(EngineConfigError):
            load_engine_config(config_file("- 1\n- 2\n"))

    def test_invalid_value_in_file(self, config_file):
        with pytest.raises(EngineConfigError):
            load_engine_config(config_file("engine:\n  max_workers: 0\n"))
