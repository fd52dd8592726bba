"""
命令分发

把 munin 协议命令转换为基于当前快照的响应文本。
未知命令、未知插件返回以 "#" 开头的注释行，不抛异常。
"""

from typing import Dict, List, Mapping

from munin_agent.cache import CacheManager
from munin_agent.models import Snapshot
from munin_agent.protocol import (
    Command,
    ConfigCommand,
    DATA_TERMINATOR,
    FetchCommand,
    ListCommand,
    MalformedCommand,
    NodesCommand,
    VersionCommand,
    parse_command,
)


def data_block(data: str) -> str:
    return data + DATA_TERMINATOR


def list_response(services) -> str:
    return " ".join(services) + "\n"


def version_response(version: str) -> str:
    return version + "\n"


def _service_response(name: str, data: Mapping[str, str]) -> str:
    value = data.get(name)
    if value is None:
        return f"# unknown service {name}"
    return data_block(value)


def format_command(command: Command, snapshot: Snapshot) -> str:
    """
    基于快照格式化单条命令的响应

    Args:
        command: 已解析的命令
        snapshot: 当前快照

    Returns:
        协议格式的响应文本
    """
    if isinstance(command, ListCommand):
        return list_response(snapshot.services)
    if isinstance(command, NodesCommand):
        return data_block(snapshot.node)
    if isinstance(command, VersionCommand):
        return version_response(snapshot.version)
    if isinstance(command, ConfigCommand):
        return _service_response(command.name, snapshot.config_data)
    if isinstance(command, FetchCommand):
        return _service_response(command.name, snapshot.fetch_data)
    if isinstance(command, MalformedCommand):
        return "# unknown service"
    return f"# unknown command {command.raw}"


def render_all(snapshot: Snapshot) -> Dict[str, str]:
    """生成全部已知命令的响应，按命令字符串排序"""
    responses = {
        "list": list_response(snapshot.services),
        "nodes": data_block(snapshot.node),
        "version": version_response(snapshot.version),
    }
    for service in snapshot.services:
        responses[f"config {service}"] = data_block(snapshot.config_data[service])
        responses[f"fetch {service}"] = data_block(snapshot.fetch_data[service])

    return {key: responses[key] for key in sorted(responses)}


class CommandDispatcher:
    """命令分发器：每次调用只刷新一次缓存，整批命令使用同一快照"""

    def __init__(self, cache: CacheManager):
        self.cache = cache

    async def execute(self, commands: List[str]) -> List[str]:
        parsed = [parse_command(c) for c in commands]
        return await self.cache.with_snapshot(
            lambda snapshot: [format_command(c, snapshot) for c in parsed]
        )

    async def all_responses(self) -> Dict[str, str]:
        return await self.cache.with_snapshot(render_all)
