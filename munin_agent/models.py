"""
数据模型定义

- Snapshot: 一次完整刷新得到的只读快照
- API 响应使用 Pydantic 定义
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class Snapshot:
    """
    muninlite 快照（发布后不再修改，只会被整体替换）

    services 保持 list 命令返回的顺序，config_data / fetch_data 的键与之一致。
    """
    updated_at: float
    node: str
    version: str
    services: Tuple[str, ...]
    config_data: Mapping[str, str] = field(repr=False)
    fetch_data: Mapping[str, str] = field(repr=False)

    @classmethod
    def build(
        cls,
        updated_at: float,
        node: str,
        version: str,
        services: Iterable[str],
        config_data: Dict[str, str],
        fetch_data: Dict[str, str],
    ) -> "Snapshot":
        """校验插件集合一致后构造快照，映射以只读视图保存"""
        services = tuple(services)
        expected = set(services)
        if set(config_data) != expected or set(fetch_data) != expected:
            raise ValueError("config/fetch data do not match service list")

        return cls(
            updated_at=updated_at,
            node=node,
            version=version,
            services=services,
            config_data=MappingProxyType(dict(config_data)),
            fetch_data=MappingProxyType(dict(fetch_data)),
        )


class HealthResponse(BaseModel):
    """健康检查响应"""
    status: str = Field(..., description="健康状态: ok|degraded")
    timestamp: datetime = Field(..., description="检查时间")
    checks: Dict[str, str] = Field(..., description="各组件检查结果")
    details: Dict[str, Optional[str]] = Field(..., description="详细信息")
    cache_age_seconds: Optional[float] = Field(None, description="当前快照的存活时间（秒）")
    services: int = Field(0, description="当前快照中的插件数量")
