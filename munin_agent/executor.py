"""
muninlite 执行器

每批命令启动一个新的 muninlite 进程：
    写入全部命令 -> 关闭 stdin -> 读取合并后的 stdout/stderr -> 等待退出 -> 按协议拆分
"""

import asyncio
import logging
import os
import signal
from pathlib import Path
from typing import List

from munin_agent.exceptions import ExecutionTimeout, IOFailure, NonZeroExit, ResourceMissing
from munin_agent.protocol import split_responses

logger = logging.getLogger(__name__)


class MuninExecutor:
    """
    muninlite 子进程执行器

    Args:
        path: muninlite 可执行文件路径（由启动阶段部署，执行器本身不负责部署）
        timeout: 单批命令的超时时间（秒）
    """

    def __init__(self, path: str, timeout: float = 30.0):
        self.path = Path(path)
        self.timeout = timeout

    async def execute(self, commands: List[str]) -> List[str]:
        """
        执行一批命令

        Args:
            commands: 命令列表，如 ["nodes", "version", "list"]

        Returns:
            与 commands 顺序一致的响应列表

        Raises:
            ResourceMissing: muninlite 不存在或不可执行
            IOFailure: 启动或读写失败、超时
            NonZeroExit: 退出码非零
        """
        if not commands:
            return []

        output = await self._run(commands)
        return split_responses(output, commands)

    def _check_binary(self):
        if not self.path.is_file():
            raise ResourceMissing(f"muninlite binary not found at {self.path}")
        if not os.access(self.path, os.X_OK):
            raise ResourceMissing(f"muninlite binary at {self.path} is not executable")

    async def _run(self, commands: List[str]) -> str:
        self._check_binary()

        try:
            payload = "".join(f"{c}\n" for c in commands).encode("ascii")
        except UnicodeEncodeError as e:
            raise IOFailure(f"commands must be ASCII: {e}") from e

        try:
            proc = await asyncio.create_subprocess_exec(
                str(self.path.absolute()),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                start_new_session=True,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ResourceMissing(f"Cannot start muninlite at {self.path}: {e}") from e
        except OSError as e:
            raise IOFailure(f"Error starting muninlite: {e}") from e

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(payload), timeout=self.timeout)
        except asyncio.TimeoutError:
            await _terminate(proc)
            raise ExecutionTimeout(f"muninlite did not finish within {self.timeout}s")
        except asyncio.CancelledError:
            await _terminate(proc)
            raise
        except OSError as e:
            await _terminate(proc)
            raise IOFailure(f"Error communicating with muninlite: {e}") from e

        output = stdout.decode("utf-8", errors="replace")

        if proc.returncode != 0:
            error = NonZeroExit(proc.returncode, output)
            logger.error(str(error))
            logger.info(output)
            raise error

        return output


def _signal_group(proc: asyncio.subprocess.Process, sig: int):
    """向 muninlite 所在进程组发送信号（插件派生的子进程一并处理）"""
    try:
        os.killpg(proc.pid, sig)
    except ProcessLookupError:
        pass


async def _terminate(proc: asyncio.subprocess.Process, grace: float = 5):
    """
    终止 muninlite 进程组：先 SIGTERM，grace 秒内管道未关闭则 SIGKILL

    进程组内任一进程持有 stdout 时 proc.wait() 不会返回
    """
    _signal_group(proc, signal.SIGTERM)
    try:
        await asyncio.wait_for(proc.wait(), timeout=grace)
    except asyncio.TimeoutError:
        _signal_group(proc, signal.SIGKILL)
        try:
            await asyncio.wait_for(proc.wait(), timeout=grace)
        except asyncio.TimeoutError:
            logger.warning(f"muninlite process group {proc.pid} did not exit after SIGKILL")
    finally:
        # 释放管道
        transport = getattr(proc, "_transport", None)
        if transport is not None:
            transport.close()
