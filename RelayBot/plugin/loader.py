"""
插件加载器 - 发现、导入和驱逐插件模块
Plugin loader - discovers, imports, and evicts plugin modules.

插件来源有两种：
1. 显式注册的工厂（register_factory），重载时重新调用工厂
2. 搜索路径中的单文件模块 ``<name>.py`` 或包目录 ``<name>/__init__.py``，
   每次加载都会重新执行模块代码
Plugins come from two sources:
1. Explicitly registered factories (register_factory); a reload calls the
   factory again.
2. Single-file modules ``<name>.py`` or package directories
   ``<name>/__init__.py`` on the search paths; every load re-executes the
   module code.
"""

from __future__ import annotations

import importlib.util
import logging
import os
import re
import sys
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from RelayBot.kernel.errors import PluginLoadError
from RelayBot.plugin.base import Plugin
from RelayBot.utils.paths import get_builtin_plugins_path, get_plugins_path

if TYPE_CHECKING:
    from RelayBot.kernel.orchestrator import BotOrchestrator

logger = logging.getLogger(__name__)

# (bot, key) -> Plugin
PluginFactory = Callable[..., Plugin]

# 动态导入的插件模块名前缀
MODULE_PREFIX = "relaybot_plugin_"

_VALID_NAME = re.compile(r"^[A-Za-z0-9_\-]+$")


def sanitize_name(name: str) -> str:
    """
    净化插件名：反复删除 ``../`` 直到不再出现
    Sanitize a plugin name by removing ``../`` until none remains.
    """
    name = (name or "").strip()
    while "../" in name:
        name = name.replace("../", "")
    return name


class PluginLoader:
    """
    插件加载器 - 扫描搜索路径并把插件名解析为工厂
    Plugin loader - scans search paths and resolves plugin names to factories.
    """

    def __init__(self, search_paths: list[str] | None = None) -> None:
        # 搜索路径（靠前的优先）
        if search_paths is None:
            search_paths = [get_builtin_plugins_path(), get_plugins_path()]
        self._search_paths: list[str] = list(search_paths)
        # 显式注册的插件工厂: name -> factory
        self._factories: dict[str, PluginFactory] = {}

    @property
    def search_paths(self) -> list[str]:
        return list(self._search_paths)

    def add_search_path(self, path: str) -> None:
        """追加一个搜索路径 / Append a search path."""
        if path and path not in self._search_paths:
            self._search_paths.append(path)

    def register_factory(self, name: str, factory: PluginFactory) -> None:
        """
        注册一个插件工厂（通常就是插件类）
        Register a plugin factory, usually the plugin class itself.
        """
        self._factories[sanitize_name(name)] = factory
        logger.debug("已注册插件工厂: %s", name)

    def unregister_factory(self, name: str) -> bool:
        return self._factories.pop(sanitize_name(name), None) is not None

    def discover(self) -> list[str]:
        """
        列出全部可发现的插件名（工厂在前，其后按搜索路径顺序）
        List every discoverable plugin name: factories first, then files in
        search path order.
        """
        names: list[str] = list(self._factories)
        for search_path in self._search_paths:
            if not os.path.isdir(search_path):
                continue
            for entry in sorted(os.listdir(search_path)):
                if entry.startswith(("_", ".")):
                    continue
                full = os.path.join(search_path, entry)
                if entry.endswith(".py") and os.path.isfile(full):
                    name = entry[:-3]
                elif os.path.isfile(os.path.join(full, "__init__.py")):
                    name = entry
                else:
                    continue
                if name not in names:
                    names.append(name)
        return names

    def find_file(self, name: str) -> str | None:
        """
        在搜索路径中查找插件模块文件
        Find a plugin module file on the search paths.
        """
        if not _VALID_NAME.match(name):
            return None
        for search_path in self._search_paths:
            single = os.path.join(search_path, f"{name}.py")
            if os.path.isfile(single):
                return single
            package = os.path.join(search_path, name, "__init__.py")
            if os.path.isfile(package):
                return package
        return None

    @staticmethod
    def module_name(name: str) -> str:
        return f"{MODULE_PREFIX}{name}"

    def resolve(self, name: str) -> PluginFactory:
        """
        把插件名解析为工厂；文件插件会被重新导入
        Resolve a plugin name to a factory; file plugins are re-imported.
        """
        factory = self._factories.get(name)
        if factory is not None:
            return factory

        path = self.find_file(name)
        if path is None:
            raise PluginLoadError(f"plugin '{name}' not found")
        return self._import_plugin_class(name, path)

    def _import_plugin_class(self, name: str, path: str) -> type[Plugin]:
        module_name = self.module_name(name)
        # 确保重新执行模块代码
        self.evict(name)

        if os.path.basename(path) == "__init__.py":
            spec = importlib.util.spec_from_file_location(
                module_name,
                path,
                submodule_search_locations=[os.path.dirname(path)],
            )
        else:
            spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise PluginLoadError(f"cannot import plugin '{name}' from {path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            self.evict(name)
            raise PluginLoadError(f"plugin '{name}' failed to import: {exc}") from exc

        # 查找模块中定义的 Plugin 子类
        for attr in vars(module).values():
            if (
                isinstance(attr, type)
                and issubclass(attr, Plugin)
                and attr is not Plugin
                and attr.__module__ == module_name
            ):
                logger.debug("已导入插件模块 %s (%s)", module_name, path)
                return attr

        self.evict(name)
        raise PluginLoadError(f"no Plugin subclass found in {path}")

    def create(self, name: str, bot: BotOrchestrator) -> Plugin:
        """
        构造插件实例
        Construct a plugin instance.
        """
        factory = self.resolve(name)
        plugin: Any = factory(bot, key=name)
        if not isinstance(plugin, Plugin):
            raise PluginLoadError(f"factory for '{name}' did not return a Plugin")
        return plugin

    def evict(self, name: str) -> bool:
        """
        从 sys.modules 中驱逐插件模块及其子模块
        Evict a plugin module and its submodules from ``sys.modules``.
        """
        module_name = self.module_name(name)
        stale = [
            key
            for key in sys.modules
            if key == module_name or key.startswith(module_name + ".")
        ]
        for key in stale:
            del sys.modules[key]
        return bool(stale)
