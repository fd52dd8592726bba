"""
快照缓存管理

维护当前 muninlite 快照：
- 超过新鲜度窗口（默认 30s）后才重新调用 muninlite
- 同一时刻只允许一个刷新在进行（单飞），并发调用方等待后直接复用新快照
- 刷新失败不影响旧快照
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional, Protocol, TypeVar

from munin_agent.models import Snapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL = 30.0


class Executor(Protocol):
    async def execute(self, commands: List[str]) -> List[str]:
        ...


class CacheManager:
    """
    快照缓存管理器

    Args:
        executor: muninlite 执行器
        ttl: 新鲜度窗口（秒）
        clock: 时间函数，返回秒（测试时可替换）
    """

    def __init__(
        self,
        executor: Executor,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ):
        self._executor = executor
        self._ttl = ttl
        self._clock = clock
        self._snapshot: Optional[Snapshot] = None
        self._lock = asyncio.Lock()

    @property
    def snapshot(self) -> Optional[Snapshot]:
        """当前快照（不触发刷新）"""
        return self._snapshot

    @property
    def ttl(self) -> float:
        return self._ttl

    def is_stale(self) -> bool:
        snapshot = self._snapshot
        return snapshot is None or self._clock() - snapshot.updated_at >= self._ttl

    def age(self) -> Optional[float]:
        """当前快照的存活时间（秒），无快照时为 None"""
        snapshot = self._snapshot
        if snapshot is None:
            return None
        return self._clock() - snapshot.updated_at

    def invalidate(self):
        """丢弃当前快照，下次访问时强制刷新"""
        self._snapshot = None

    async def ensure_fresh(self) -> Snapshot:
        """
        确保快照新鲜

        所有调用方先获取锁，再在锁内判断是否过期，保证并发时只刷新一次。

        Returns:
            当前（新鲜的）快照

        Raises:
            ExecutionError: 刷新失败时原样抛出，旧快照保持不变
        """
        async with self._lock:
            if self.is_stale():
                self._snapshot = await self._refresh()
            else:
                logger.debug("Munin cache is up to date")
            return self._snapshot

    async def with_snapshot(self, fn: Callable[[Snapshot], T]) -> T:
        """刷新（如有必要）后用当前快照调用 fn"""
        snapshot = await self.ensure_fresh()
        return fn(snapshot)

    async def _refresh(self) -> Snapshot:
        logger.info("Updating Munin cache")

        nodes, version, listing = await self._executor.execute(["nodes", "version", "list"])

        node = nodes.split("\n")[0]
        services = list(dict.fromkeys(listing.split()))

        config_responses = await self._executor.execute([f"config {s}" for s in services])
        fetch_responses = await self._executor.execute([f"fetch {s}" for s in services])

        snapshot = Snapshot.build(
            updated_at=self._clock(),
            node=node,
            version=version,
            services=services,
            config_data=dict(zip(services, config_responses)),
            fetch_data=dict(zip(services, fetch_responses)),
        )
        logger.info(
            f"Updating Munin cache completed; node '{node}', version '{version}': services {services}"
        )
        return snapshot
