"""
测试 HTTP API

覆盖：
- GET /munin 返回排序后的全量响应
- GET /munin/runCommand 返回纯文本
- GET /munin/runCommands 返回数组
- 执行失败返回 500，Token 校验，健康检查
"""

import asyncio
import sys
from pathlib import Path

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

# 添加项目路径到 sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

from munin_agent import config as config_module
from munin_agent.app import app, get_all, get_dispatcher
from munin_agent.cache import CacheManager
from munin_agent.config import AgentConfig
from munin_agent.dispatcher import CommandDispatcher
from munin_agent.exceptions import NonZeroExit

from fakes import FakeClock, FakeExecutor


@pytest.fixture
def agent_config(monkeypatch, tmp_path):
    cfg = AgentConfig(muninlite_path=str(tmp_path / "muninlite"))
    monkeypatch.setattr(config_module, "_config", cfg)
    return cfg


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def client(agent_config, executor):
    dispatcher = CommandDispatcher(CacheManager(executor, clock=FakeClock()))
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestMuninRoutes:
    """munin 接口测试"""

    def test_get_all(self, client):
        resp = client.get("/munin")
        assert resp.status_code == 200
        data = resp.json()
        assert list(data) == sorted(data)
        assert data["list"] == "disk cpu\n"
        assert data["nodes"] == "host1\n.\n"
        assert data["config disk"] == "graph_title Disk\n.\n"

    def test_run_command_plain_text(self, client):
        resp = client.get("/munin/runCommand", params={"command": "fetch disk"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert resp.text == "value 42\n.\n"

    def test_run_command_returns_first(self, client):
        resp = client.get("/munin/runCommand", params=[("command", "version"), ("command", "list")])
        assert resp.text == "1.2.3\n"

    def test_run_command_requires_command(self, client):
        resp = client.get("/munin/runCommand")
        assert resp.status_code == 400

    def test_run_commands(self, client):
        params = [("command", "list"), ("command", "fetch cpu"), ("command", "config nope"), ("command", "quit")]
        resp = client.get("/munin/runCommands", params=params)
        assert resp.status_code == 200
        assert resp.json() == [
            "disk cpu\n",
            "value 7\n.\n",
            "# unknown service nope",
            "# unknown command quit",
        ]

    def test_execution_error_returns_500(self, client, executor):
        executor.fail_on = "nodes"

        resp = client.get("/munin")

        assert resp.status_code == 500
        assert "NonZeroExit" in resp.json()["detail"]

        resp = client.get("/munin/runCommands", params={"command": "list"})
        assert resp.status_code == 500

    def test_server_error_keeps_cause(self, agent_config, executor):
        """测试：500 异常保留原始 ExecutionError 作为 __cause__"""
        executor.fail_on = "nodes"
        dispatcher = CommandDispatcher(CacheManager(executor, clock=FakeClock()))

        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(get_all(authorized=True, dispatcher=dispatcher))

        assert exc_info.value.status_code == 500
        assert isinstance(exc_info.value.__cause__, NonZeroExit)


class TestToken:
    """Token 校验测试"""

    @pytest.fixture(autouse=True)
    def _token(self, agent_config):
        agent_config.token = "secret"

    def test_missing_token(self, client):
        assert client.get("/munin").status_code == 401

    def test_wrong_token(self, client):
        resp = client.get("/munin", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_valid_token(self, client):
        resp = client.get("/munin", headers={"Authorization": "Bearer secret"})
        assert resp.status_code == 200

    def test_health_is_open(self, client):
        assert client.get("/v1/health").status_code == 200


class TestHealth:
    """健康检查测试"""

    def test_missing_binary_is_degraded(self, client):
        data = client.get("/v1/health").json()
        assert data["status"] == "degraded"
        assert data["checks"]["muninlite"] == "error"
        assert data["checks"]["cache"] == "empty"
        assert data["cache_age_seconds"] is None

    def test_loaded_cache(self, client, agent_config, executor):
        binary = Path(agent_config.muninlite_path)
        binary.write_text("#!/bin/sh\n", encoding="utf-8")
        binary.chmod(0o755)

        client.get("/munin")
        data = client.get("/v1/health").json()

        assert data["status"] == "ok"
        assert data["checks"] == {"muninlite": "ok", "cache": "ok"}
        assert data["cache_age_seconds"] == 0
        assert data["services"] == 2
        assert executor.refresh_count == 1
