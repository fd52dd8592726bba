"""
异常定义

muninlite 调用失败的错误分类
"""

from typing import Optional


class ExecutionError(Exception):
    """muninlite 执行失败的基类"""


class ResourceMissing(ExecutionError):
    """muninlite 可执行文件不存在或不可执行"""


class IOFailure(ExecutionError):
    """启动子进程或读写管道失败"""


class ExecutionTimeout(IOFailure):
    """子进程在超时时间内未结束"""


class NonZeroExit(ExecutionError):
    """子进程退出码非零，携带完整输出便于排查"""

    def __init__(self, returncode: int, output: str = "", message: Optional[str] = None):
        self.returncode = returncode
        self.output = output
        super().__init__(message or f"Exit value from muninlite is {returncode} instead of zero")
