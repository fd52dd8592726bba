"""
Munin Agent 主程序入口

使用方式:
    python -m munin_agent
    或
    uvicorn munin_agent.app:app --host 0.0.0.0 --port 9109
"""

import sys
import uvicorn

from munin_agent.config import get_config
from munin_agent.logging_setup import setup_logging


def main():
    """主程序入口"""
    try:
        config = get_config()
        setup_logging(config)

        print("Starting Munin Agent...")
        print(f"muninlite: {config.muninlite_path}")
        print(f"Listening on: {config.listen}")

        # 启动 uvicorn 服务器
        uvicorn.run(
            "munin_agent.app:app",
            host=config.host,
            port=config.port,
            log_level=config.logging.level.lower(),
            access_log=True
        )
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
