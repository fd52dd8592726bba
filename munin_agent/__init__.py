"""
Munin Agent - muninlite 协议桥接服务

负责：
- 按批次调用本地 muninlite 子进程并拆分协议响应
- 维护 30s 新鲜度的内存快照（单飞刷新）
- 提供 REST API 给 munin 拉取端
"""

__version__ = "1.0.0"
