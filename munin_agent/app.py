"""
FastAPI 应用入口

提供 HTTP 接口供 munin 拉取端读取 muninlite 数据
"""

import logging
import os
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.responses import PlainTextResponse

from munin_agent import __version__
from munin_agent.bootstrap import deploy_muninlite
from munin_agent.cache import CacheManager
from munin_agent.config import get_config
from munin_agent.dispatcher import CommandDispatcher
from munin_agent.exceptions import ExecutionError
from munin_agent.executor import MuninExecutor
from munin_agent.models import HealthResponse

logger = logging.getLogger(__name__)

# 创建 FastAPI 应用
app = FastAPI(
    title="Munin Agent",
    version=__version__,
    description="muninlite 协议桥接服务"
)


# 全局分发器实例（延迟创建）
_dispatcher: Optional[CommandDispatcher] = None


def get_dispatcher() -> CommandDispatcher:
    """获取全局命令分发器"""
    global _dispatcher
    if _dispatcher is None:
        config = get_config()
        executor = MuninExecutor(config.muninlite_path, timeout=config.exec_timeout)
        _dispatcher = CommandDispatcher(CacheManager(executor, ttl=config.cache_ttl))
    return _dispatcher


def verify_token(authorization: Optional[str] = Header(None)) -> bool:
    """
    验证 Token

    未配置 token 时不校验

    Raises:
        HTTPException: Token 无效时抛出 401 错误
    """
    config = get_config()
    if not config.token:
        return True

    if not authorization:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    # 解析 Bearer token
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    if parts[1] != config.token:
        raise HTTPException(status_code=401, detail="Invalid token")

    return True


def _server_error(e: ExecutionError) -> HTTPException:
    logger.warning(f"muninlite execution failed: {e}")
    return HTTPException(status_code=500, detail=f"{type(e).__name__}: {e}")


@app.on_event("startup")
async def _startup_deploy():
    config = get_config()
    try:
        deploy_muninlite(config.muninlite_source, config.muninlite_path)
    except ExecutionError as e:
        # 仅记录，不阻塞启动；调用时由执行器报告
        logger.warning(f"muninlite deployment failed: {e}")


@app.get("/munin", response_model=Dict[str, str])
async def get_all(
    authorized: bool = Depends(verify_token),
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
):
    """
    获取全部命令的响应

    返回 list、nodes、version 以及每个插件的 config / fetch，按命令排序
    """
    try:
        return await dispatcher.all_responses()
    except ExecutionError as e:
        raise _server_error(e) from e


@app.get("/munin/runCommand", response_class=PlainTextResponse)
async def run_command(
    command: List[str] = Query(default=[]),
    authorized: bool = Depends(verify_token),
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
):
    """执行命令，返回第一条命令的纯文本响应"""
    if not command:
        raise HTTPException(status_code=400, detail="Missing command parameter")

    try:
        responses = await dispatcher.execute(command)
    except ExecutionError as e:
        raise _server_error(e) from e
    return PlainTextResponse(responses[0])


@app.get("/munin/runCommands", response_model=List[str])
async def run_commands(
    command: List[str] = Query(default=[]),
    authorized: bool = Depends(verify_token),
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
):
    """执行多条命令，按请求顺序返回响应数组"""
    try:
        return await dispatcher.execute(command)
    except ExecutionError as e:
        raise _server_error(e) from e


@app.get("/v1/health", response_model=HealthResponse)
async def get_health(dispatcher: CommandDispatcher = Depends(get_dispatcher)):
    """
    健康检查端点

    检查 muninlite 可执行文件和缓存状态，不触发刷新
    """
    config = get_config()
    checks = {}
    details = {}
    overall_status = "ok"

    # 检查 muninlite
    path = config.muninlite_path
    if not os.path.isfile(path):
        checks["muninlite"] = "error"
        details["muninlite"] = f"{path} not found"
        overall_status = "degraded"
    elif not os.access(path, os.X_OK):
        checks["muninlite"] = "error"
        details["muninlite"] = f"{path} is not executable"
        overall_status = "degraded"
    else:
        checks["muninlite"] = "ok"
        details["muninlite"] = None

    # 检查缓存
    cache = dispatcher.cache
    snapshot = cache.snapshot
    age = None
    if snapshot is None:
        checks["cache"] = "empty"
        details["cache"] = "No snapshot loaded yet"
    else:
        age = round(cache.age(), 3)
        checks["cache"] = "stale" if cache.is_stale() else "ok"
        details["cache"] = f"node '{snapshot.node}', version '{snapshot.version}'"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.utcnow(),
        checks=checks,
        details=details,
        cache_age_seconds=age,
        services=len(snapshot.services) if snapshot else 0,
    )
