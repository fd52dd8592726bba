"""
单元测试：配置加载
"""

import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

# 添加项目路径到 sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

from munin_agent import config as config_module
from munin_agent.config import AgentConfig, get_config, load_config, reset_config


class TestLoadConfig:

    def test_defaults_when_missing(self, tmp_path):
        cfg = load_config(str(tmp_path / "absent.yaml"))

        assert cfg.listen == "0.0.0.0:9109"
        assert cfg.muninlite_path == "/tmp/muninlite"
        assert cfg.cache_ttl == 30
        assert cfg.token is None

    def test_yaml_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "listen: 127.0.0.1:9200\n"
            "token: abc\n"
            "cache_ttl: 10\n"
            "exec_timeout: 5\n"
            "logging:\n"
            "  level: DEBUG\n",
            encoding="utf-8",
        )

        cfg = load_config(str(path))

        assert cfg.host == "127.0.0.1"
        assert cfg.port == 9200
        assert cfg.token == "abc"
        assert cfg.cache_ttl == 10
        assert cfg.exec_timeout == 5
        assert cfg.logging.level == "DEBUG"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(str(path)) == AgentConfig()

    def test_invalid_ttl(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("cache_ttl: 0\n", encoding="utf-8")

        with pytest.raises(ValidationError):
            load_config(str(path))

    def test_env_path(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("muninlite_path: /opt/muninlite\n", encoding="utf-8")
        monkeypatch.setenv("MUNIN_AGENT_CONFIG", str(path))
        monkeypatch.setattr(config_module, "_config", None)

        assert get_config().muninlite_path == "/opt/muninlite"
        reset_config()
        assert config_module._config is None
