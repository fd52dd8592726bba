"""
配置管理模块

从 YAML 文件加载配置，支持环境变量指定配置文件路径
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = "/etc/munin-agent/config.yaml"


class LoggingConfig(BaseModel):
    """日志配置"""
    level: str = "INFO"
    file: Optional[str] = None


class AgentConfig(BaseModel):
    """Agent 配置模型"""

    listen: str = Field(default="0.0.0.0:9109", description="监听地址")
    token: Optional[str] = Field(default=None, description="认证 Token，为空时不校验")
    muninlite_path: str = Field(default="/tmp/muninlite", description="muninlite 可执行文件路径")
    muninlite_source: Optional[str] = Field(default=None, description="启动时部署 muninlite 的源文件")
    cache_ttl: float = Field(default=30.0, gt=0, description="快照新鲜度窗口（秒）")
    exec_timeout: float = Field(default=30.0, gt=0, description="单次调用 muninlite 的超时时间（秒）")
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def host(self) -> str:
        """获取监听主机"""
        return self.listen.rsplit(":", 1)[0]

    @property
    def port(self) -> int:
        """获取监听端口"""
        return int(self.listen.rsplit(":", 1)[1])


def load_config(config_path: Optional[str] = None) -> AgentConfig:
    """
    加载配置文件

    优先级：
    1. 参数指定的路径
    2. 环境变量 MUNIN_AGENT_CONFIG
    3. 默认路径 /etc/munin-agent/config.yaml

    配置文件不存在时使用默认配置
    """
    if config_path is None:
        config_path = os.getenv("MUNIN_AGENT_CONFIG", DEFAULT_CONFIG_PATH)

    config_file = Path(config_path)
    if not config_file.exists():
        return AgentConfig()

    with open(config_file, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f)

    return AgentConfig(**(config_data or {}))


# 全局配置实例（延迟加载）
_config: Optional[AgentConfig] = None


def get_config() -> AgentConfig:
    """获取全局配置实例"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config():
    """重置配置（主要用于测试）"""
    global _config
    _config = None
