"""
RelayBot - 多传输层聊天机器人运行时
RelayBot - a multi-transport chat bot runtime.

把 IRC / Slack 等聊天后端的频道消息分发给可热加载的命令插件。
Dispatches channel messages from chat backends such as IRC and Slack to
hot-loadable command plugins.
"""

__app_name__ = "RelayBot"
__version__ = "1.0.0"
