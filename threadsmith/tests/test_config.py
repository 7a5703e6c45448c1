"""Tests for config loading, env overrides and saving."""

import json
import os
import stat
from unittest.mock import patch


class TestDefaults:
    def test_engine_defaults(self):
        from threadsmith.common.config import EngineConfig
        cfg = EngineConfig()
        assert cfg.thread_idle_minutes == 30
        assert cfg.focus_stack_size == 10
        assert cfg.attention_cache_size == 100
        assert cfg.confidence_trail_size == 1000
        assert cfg.stale_after_hours == 24
        assert cfg.trending_limit == 5

    def test_missing_file_gives_defaults(self, tmp_path):
        from threadsmith.common.config import load_config
        with patch("threadsmith.common.config.CONFIG_PATH", tmp_path / "missing.json"):
            cfg = load_config()
        assert cfg.server.port == 8090
        assert cfg.server.host == "0.0.0.0"
        assert cfg.log_level == "INFO"


class TestLoadConfig:
    def test_load_from_file(self, tmp_path):
        from threadsmith.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({
            "engine": {"thread_idle_minutes": 10, "stale_after_hours": 48},
            "server": {"port": 9000},
            "log_level": "DEBUG",
        }))

        with patch("threadsmith.common.config.CONFIG_PATH", config_file):
            cfg = load_config()

        assert cfg.engine.thread_idle_minutes == 10
        assert cfg.engine.stale_after_hours == 48
        assert cfg.engine.focus_stack_size == 10
        assert cfg.server.port == 9000
        assert cfg.log_level == "DEBUG"

    def test_invalid_json_keeps_defaults(self, tmp_path):
        from threadsmith.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text("{not json")

        with patch("threadsmith.common.config.CONFIG_PATH", config_file):
            cfg = load_config()

        assert cfg.engine.thread_idle_minutes == 30

    def test_env_overrides_file(self, tmp_path):
        from threadsmith.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"engine": {"trending_limit": 3}}))

        env = {
            "THREADSMITH_TRENDING_LIMIT": "8",
            "THREADSMITH_PORT": "9100",
            "THREADSMITH_HOST": "127.0.0.1",
            "THREADSMITH_LOG_LEVEL": "WARNING",
        }
        with patch("threadsmith.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, env, clear=False):
            cfg = load_config()

        assert cfg.engine.trending_limit == 8
        assert cfg.server.port == 9100
        assert cfg.server.host == "127.0.0.1"
        assert cfg.log_level == "WARNING"

    def test_invalid_env_int_is_ignored(self, tmp_path):
        from threadsmith.common.config import load_config
        with patch("threadsmith.common.config.CONFIG_PATH", tmp_path / "missing.json"), \
             patch.dict(os.environ, {"THREADSMITH_FOCUS_STACK_SIZE": "lots"}, clear=False):
            cfg = load_config()

        assert cfg.engine.focus_stack_size == 10


class TestSaveConfig:
    def test_save_then_load(self, tmp_path):
        from threadsmith.common.config import load_config, save_config, ThreadsmithConfig
        config_file = tmp_path / "nested" / "config.json"
        cfg = ThreadsmithConfig()
        cfg.engine.thread_idle_minutes = 15
        cfg.server.port = 8123

        with patch("threadsmith.common.config.CONFIG_PATH", config_file):
            save_config(cfg)
            loaded = load_config()

        assert loaded.engine.thread_idle_minutes == 15
        assert loaded.server.port == 8123

    def test_save_sets_private_permissions(self, tmp_path):
        from threadsmith.common.config import save_config, ThreadsmithConfig
        config_file = tmp_path / "config.json"

        with patch("threadsmith.common.config.CONFIG_PATH", config_file):
            save_config(ThreadsmithConfig())

        assert stat.S_IMODE(config_file.stat().st_mode) == 0o600
