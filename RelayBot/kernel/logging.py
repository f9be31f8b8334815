"""
日志系统 - 彩色控制台输出与滚动日志文件
Logging - coloured console output plus a rotating log file.

模块内一律使用 ``logging.getLogger(__name__)``；本模块只负责在进程启动时
为根日志器安装处理器，并按配置中的 ``logging`` 段调整级别与文件。
Modules use ``logging.getLogger(__name__)``. This module only installs the
root handlers at start-up and applies the ``logging`` config section.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import colorlog

CONSOLE_FORMAT = "%(log_color)s%(asctime)s [%(levelname)s] %(name)s:%(reset)s %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"

LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}

# 第三方库的日志过于冗长，只保留警告以上
QUIET_LOGGERS = ("irc.client", "irc.client_aio", "slack_sdk", "aiosqlite", "sqlalchemy.engine")

# 日志文件滚动参数
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3


def _parse_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    return value if isinstance(value, int) else logging.INFO


class LogManager:
    """
    日志管理器 - 持有控制台与文件处理器
    Log manager - owns the console and file handlers.
    """

    def __init__(self, level: int | str = logging.INFO) -> None:
        self._level = _parse_level(level)
        self._console = colorlog.StreamHandler(sys.stdout)
        self._console.setFormatter(
            colorlog.ColoredFormatter(
                CONSOLE_FORMAT, datefmt=DATE_FORMAT, log_colors=LEVEL_COLORS
            )
        )
        self._console.setLevel(self._level)
        self._file: logging.Handler | None = None

        root = logging.getLogger()
        root.setLevel(logging.DEBUG)
        root.addHandler(self._console)
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    @property
    def level(self) -> int:
        return self._level

    def set_level(self, level: int | str) -> None:
        """调整控制台级别 / Change the console level."""
        self._level = _parse_level(level)
        self._console.setLevel(self._level)

    def enable_file_logging(self, log_file: str | Path) -> None:
        """
        写入滚动日志文件，替换之前的文件处理器
        Log to a rotating file, replacing any previous file handler.
        """
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)

        root = logging.getLogger()
        if self._file is not None:
            root.removeHandler(self._file)
            self._file.close()

        self._file = RotatingFileHandler(
            path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
        )
        self._file.setFormatter(logging.Formatter(FILE_FORMAT))
        self._file.setLevel(logging.DEBUG)
        root.addHandler(self._file)

    def configure_from_settings(self, settings: dict[str, Any]) -> None:
        """
        应用配置中的 logging 段（level, file）
        Apply the ``logging`` config section (``level``, ``file``).
        """
        if settings.get("level"):
            self.set_level(settings["level"])
        if settings.get("file"):
            self.enable_file_logging(settings["file"])


_manager: LogManager | None = None


def get_log_manager() -> LogManager:
    """获取进程级日志管理器，首次调用时安装处理器 / Get the process-wide manager."""
    global _manager
    if _manager is None:
        _manager = LogManager()
    return _manager


def get_logger(name: str) -> logging.Logger:
    get_log_manager()
    return logging.getLogger(name)
