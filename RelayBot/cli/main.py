"""
relaybot 命令行：运行、初始化配置、查看插件与配置
relaybot command line: run, initialise config, inspect plugins and config.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys

import click

from RelayBot.utils.paths import get_config_file


@click.group()
def cli() -> None:
    """RelayBot - 多传输层聊天机器人运行时"""
    pass


@cli.command()
@click.option(
    "--config",
    "config_path",
    default=None,
    help="配置文件路径 / Path to the config file.",
)
@click.option("--data-dir", default=None, help="数据目录 / Data directory.")
def run(config_path: str | None, data_dir: str | None) -> None:
    """启动 RelayBot / Start RelayBot."""
    from RelayBot.kernel.logging import get_log_manager

    get_log_manager()
    logger = logging.getLogger("RelayBot")

    if data_dir:
        os.environ["RELAYBOT_DATA_PATH"] = data_dir

    from RelayBot.utils.paths import ensure_dir, get_data_path, get_plugins_path

    # 用户插件目录与配置目录
    ensure_dir(os.path.join(get_data_path(), "config"))
    ensure_dir(get_plugins_path())

    from RelayBot.kernel.bootstrap import Bootstrap

    bootstrap = Bootstrap(config_path=config_path)

    async def main() -> None:
        await bootstrap.start()
        await bootstrap.run_forever()

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("已中断")
    except Exception:
        logger.exception("致命错误")
        sys.exit(1)


@cli.command()
@click.option("--force", is_flag=True, help="覆盖已有配置 / Overwrite an existing config.")
def init(force: bool) -> None:
    """初始化配置 / Initialize configuration."""
    from RelayBot.config.defaults import build_default_config

    config_path = get_config_file()
    os.makedirs(os.path.dirname(config_path) or ".", exist_ok=True)

    if os.path.exists(config_path) and not force:
        click.echo(f"配置文件已存在: {config_path}")
        if not click.confirm("是否覆盖?"):
            return

    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(build_default_config(), f, ensure_ascii=False, indent=2)

    click.echo(f"配置文件已创建: {config_path}")


@cli.command()
def version() -> None:
    """显示版本信息 / Show version info."""
    from RelayBot import __app_name__, __version__

    click.echo(f"{__app_name__} v{__version__}")


@cli.group()
def plugin() -> None:
    """插件管理 / Plugin management."""
    pass


@plugin.command("list")
@click.option("--config", "config_path", default=None, help="配置文件路径")
def plugin_list(config_path: str | None) -> None:
    """列出可发现的插件 / List discoverable plugins."""
    from RelayBot.config.defaults import build_default_config
    from RelayBot.config.manager import ConfigManager
    from RelayBot.plugin.loader import PluginLoader

    config = ConfigManager(defaults=build_default_config(), config_path=config_path)
    config.load()

    loader = PluginLoader()
    for path in config.get("plugins.paths", []) or []:
        loader.add_search_path(path)

    autoload = config.get("plugins.autoload", []) or []
    names = loader.discover()
    if not names:
        click.echo("没有可用的插件")
        return

    for name in names:
        marker = "*" if "*" in autoload or name in autoload else " "
        click.echo(f" {marker} {name}")


@cli.group()
def conf() -> None:
    """配置管理 / Configuration management."""
    pass


@conf.command("show")
@click.argument("key", required=False)
@click.option("--config", "config_path", default=None, help="配置文件路径")
def conf_show(key: str | None, config_path: str | None) -> None:
    """显示合并默认值后的配置 / Show configuration merged with defaults."""
    from RelayBot.config.defaults import build_default_config
    from RelayBot.config.manager import ConfigManager

    config = ConfigManager(defaults=build_default_config(), config_path=config_path)
    config.load()

    if key:
        value = config.get(key)
        if value is None:
            click.echo(f"键 '{key}' 不存在")
            return
        click.echo(json.dumps(value, ensure_ascii=False, indent=2))
    else:
        click.echo(json.dumps(config.as_dict(), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    cli()
