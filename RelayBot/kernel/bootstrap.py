"""
进程引导 - 从配置文件组装出一个可运行的 RelayBot
Process bootstrap - assembles a running RelayBot from a config file.

组装顺序固定：配置、存储、编排器、传输层、插件，最后连接。
Assembly order is fixed: config, store, orchestrator, transports,
plugins, then connect.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

from RelayBot.config.defaults import build_default_config
from RelayBot.config.manager import ConfigManager
from RelayBot.kernel.logging import get_log_manager
from RelayBot.kernel.orchestrator import BotOrchestrator
from RelayBot.kernel.signal_hub import SignalHub, SignalKind
from RelayBot.store.collections import CollectionStore
from RelayBot.store.engine import StorageEngine

logger = logging.getLogger(__name__)


class Bootstrap:
    """
    引导器 - 持有一个进程内的编排器及其协作者
    Bootstrap - owns one orchestrator and its collaborators for the process.

    start() 的步骤：
    1. 安装日志处理器
    2. 读取配置并按 logging 段调整日志
    3. 打开存储
    4. 创建编排器
    5. 按启用开关创建传输层
    6. 加载插件（plugins.autoload）
    7. 连接全部传输层
    8. 发射 SYSTEM_READY 信号
    """

    def __init__(self, config_path: str | None = None) -> None:
        self.hub = SignalHub()
        self.config: ConfigManager | None = None
        self.store: CollectionStore | None = None
        self.orchestrator: BotOrchestrator | None = None
        self._config_path = config_path
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """
        组装并连接，完成后发射 system.ready
        Assemble and connect; emits ``system.ready`` when done.
        """
        get_log_manager()
        logger.info("RelayBot 正在启动...")

        # 配置
        self._init_config()

        # 按配置调整日志
        get_log_manager().configure_from_settings(self.config.section("logging"))

        # 存储
        await self._init_store()

        # 创建编排器
        self.orchestrator = BotOrchestrator(
            config=self.config, hub=self.hub, store=self.store
        )

        # 创建传输层
        count = await self.orchestrator.load_transports()
        logger.info("已创建 %d 个传输层", count)

        # 加载插件
        await self._load_plugins()

        # 连接传输层
        await self.orchestrator.connect_all()

        # 就绪
        await self.hub.emit_new(SignalKind.SYSTEM_READY, source="bootstrap")

        logger.info("RelayBot 启动成功")

    def _init_config(self) -> None:
        """初始化配置系统 / Initialize the configuration system."""
        self.config = ConfigManager(
            defaults=build_default_config(), config_path=self._config_path
        )
        self.config.load()
        logger.info("配置文件: %s", self.config.path)

    async def _init_store(self) -> None:
        """初始化存储层 / Initialize the storage layer."""
        db_path = self.config.get("store.db_path", "data/relaybot.db")
        self.store = CollectionStore(StorageEngine(db_path))
        logger.info("存储: %s", db_path)

    async def _load_plugins(self) -> None:
        """加载插件 / Load plugins."""
        for name in self.config.get("plugins.autoload", []) or []:
            await self.orchestrator.load_plugin(name)
        logger.info("已加载 %d 个插件", len(self.orchestrator.plugins))

    def request_shutdown(self) -> None:
        """请求关闭 / Request a shutdown."""
        self._shutdown_event.set()

    async def run_forever(self) -> None:
        """
        阻塞到 SIGINT/SIGTERM 或 request_shutdown()，然后关闭
        Block until SIGINT/SIGTERM or ``request_shutdown()``, then shut down.
        """
        loop = asyncio.get_running_loop()

        # Windows 的事件循环不支持 add_signal_handler
        if sys.platform != "win32":
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, self.request_shutdown)

        try:
            await self._shutdown_event.wait()
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """
        优雅关闭：告别、等待宽限期、关闭存储
        Graceful shutdown: farewell, grace period, store disposal.
        """
        logger.info("RelayBot 正在关闭...")

        if self.orchestrator is not None:
            await self.orchestrator.shutdown(
                self.config.get("shutdown.farewell", "bye")
            )

        grace = float(self.config.get("shutdown.grace_period", 2)) if self.config else 0
        if grace > 0:
            await asyncio.sleep(grace)

        if self.store is not None:
            await self.store.close()
            self.store = None

        self.hub.clear()

        logger.info("RelayBot 已完全关闭")
