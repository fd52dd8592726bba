"""
munin 协议解析

- parse_command: 把命令字符串解析为固定的几种命令类型
- split_responses: 按协议分帧规则把 muninlite 的整段输出拆成逐条响应

协议格式:
    list / version        单行响应，以 "\\n" 结束
    nodes / config / fetch 多行数据块，以仅含 "." 的一行结束
    以 "#" 开头的行为注释/诊断信息
"""

from dataclasses import dataclass
from typing import List, Union

# 数据块结束标记
DATA_TERMINATOR = "\n.\n"
LINE_TERMINATOR = "\n"


@dataclass(frozen=True)
class ListCommand:
    pass


@dataclass(frozen=True)
class NodesCommand:
    pass


@dataclass(frozen=True)
class VersionCommand:
    pass


@dataclass(frozen=True)
class ConfigCommand:
    name: str


@dataclass(frozen=True)
class FetchCommand:
    name: str


@dataclass(frozen=True)
class MalformedCommand:
    """config / fetch 缺少插件名"""
    raw: str


@dataclass(frozen=True)
class UnknownCommand:
    raw: str


Command = Union[
    ListCommand,
    NodesCommand,
    VersionCommand,
    ConfigCommand,
    FetchCommand,
    MalformedCommand,
    UnknownCommand,
]

_SIMPLE_COMMANDS = {
    "list": ListCommand(),
    "nodes": NodesCommand(),
    "version": VersionCommand(),
}

_SERVICE_COMMANDS = {
    "config": ConfigCommand,
    "fetch": FetchCommand,
}


def parse_command(raw: str) -> Command:
    """
    解析单条命令

    Args:
        raw: 命令字符串，如 "list"、"config cpu"

    Returns:
        对应的命令对象；无法识别时返回 UnknownCommand
    """
    if raw in _SIMPLE_COMMANDS:
        return _SIMPLE_COMMANDS[raw]

    head, _, arg = raw.partition(" ")
    factory = _SERVICE_COMMANDS.get(head)
    if factory is None:
        return UnknownCommand(raw)

    name = arg.strip()
    if not name:
        return MalformedCommand(raw)
    return factory(name)


def is_single_line(command: Command) -> bool:
    """list / version 是单行响应，其余命令返回数据块"""
    return isinstance(command, (ListCommand, VersionCommand))


def strip_banner(output: str) -> str:
    """去掉 muninlite 启动时输出的欢迎行（"# munin node at ..."）"""
    if output.startswith("#"):
        _, _, rest = output.partition(LINE_TERMINATOR)
        return rest
    return output


def split_responses(output: str, commands: List[str]) -> List[str]:
    """
    按命令顺序拆分 muninlite 输出

    Args:
        output: 子进程的完整输出（stdout + stderr）
        commands: 写入子进程的命令列表

    Returns:
        与 commands 等长的响应列表；输出不足时剩余响应为空字符串
    """
    remaining = strip_banner(output)
    responses = []

    for raw in commands:
        terminator = LINE_TERMINATOR if is_single_line(parse_command(raw)) else DATA_TERMINATOR
        body, _, remaining = remaining.partition(terminator)
        responses.append(body)

    return responses
