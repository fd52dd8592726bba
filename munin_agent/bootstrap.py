"""
muninlite 部署

启动时把 muninlite 复制到执行路径并赋予可执行权限（已存在则跳过复制）
"""

import logging
import os
import shutil
import stat
from pathlib import Path
from typing import Optional

from munin_agent.exceptions import IOFailure, ResourceMissing

logger = logging.getLogger(__name__)


def deploy_muninlite(source: Optional[str], target: str) -> Path:
    """
    部署 muninlite 可执行文件

    Args:
        source: 源文件路径（target 已存在时可为空）
        target: 执行路径

    Returns:
        部署后的路径

    Raises:
        ResourceMissing: target 不存在且没有可用的源文件
        IOFailure: 复制或修改权限失败
    """
    target_path = Path(target)

    try:
        if not target_path.exists():
            if not source or not Path(source).is_file():
                raise ResourceMissing(f"muninlite source {source} not found")
            target_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target_path)
            logger.info(f"Deployed muninlite from {source} to {target_path}")

        if not os.access(target_path, os.X_OK):
            mode = target_path.stat().st_mode
            target_path.chmod(mode | stat.S_IXUSR)
            logger.info(f"Made {target_path} executable")
    except OSError as e:
        raise IOFailure(f"Error deploying muninlite binary to {target_path}: {e}") from e

    return target_path
