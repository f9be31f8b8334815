#!/usr/bin/env python3
"""
RelayBot - 多传输层聊天机器人运行时
应用主入口。
"""

import argparse
import asyncio
import sys
from pathlib import Path

# 确保项目根目录已加入 Python 路径
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))


def parse_arguments() -> argparse.Namespace:
    """解析命令行参数。"""
    parser = argparse.ArgumentParser(
        prog="RelayBot",
        description="Multi-transport chat bot runtime",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0",
    )
    return parser.parse_args()


def check_environment() -> None:
    """校验运行环境要求。"""
    if sys.version_info < (3, 10):
        print("Error: Python 3.10 or higher is required.")
        sys.exit(1)


def display_banner() -> None:
    """显示应用启动横幅。"""
    print("  RelayBot | Version 1.0.0 | IRC / Slack")
    print("  ─" * 20)


async def main() -> None:
    """应用主入口。"""
    from RelayBot.kernel.bootstrap import Bootstrap
    from RelayBot.kernel.logging import get_log_manager, get_logger

    args = parse_arguments()
    check_environment()
    display_banner()

    logger = get_logger("main")
    bootstrap = Bootstrap(config_path=args.config)

    try:
        await bootstrap.start()
        if args.debug:
            get_log_manager().set_level("DEBUG")
        await bootstrap.run_forever()
    except KeyboardInterrupt:
        logger.info("收到关闭信号...")


if __name__ == "__main__":
    asyncio.run(main())
