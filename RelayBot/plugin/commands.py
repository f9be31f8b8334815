"""
命令匹配 - 从插件类收集命令表，并把消息文本匹配到命令
Command matching - collects a plugin class's command table and matches
message text against it.

命令以 ``cmd_`` 前缀的成员声明，命令名即去掉前缀后的部分。
Commands are declared as members prefixed with ``cmd_``; the command name
is the remainder after the prefix.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# 命令成员前缀
COMMAND_PREFIX = "cmd_"


@dataclass(frozen=True)
class CommandDescriptor:
    """
    命令描述符 - 描述插件声明的一个命令
    Command descriptor - describes one command declared by a plugin.
    """

    # 命令名（如 echo）
    name: str
    # 成员名（如 cmd_echo）
    member: str
    # 描述（取自文档字符串首行）
    description: str = ""


def collect_commands(cls: type) -> tuple[CommandDescriptor, ...]:
    """
    按定义顺序收集类上声明的全部命令
    Collect every command declared on ``cls`` in definition order.

    从基类到子类遍历 MRO，子类覆盖的命令保留其首次出现的位置。
    Walks the MRO from base to subclass; an overridden command keeps the
    position where it first appeared.
    """
    found: dict[str, CommandDescriptor] = {}
    for klass in reversed(cls.__mro__):
        for member, value in vars(klass).items():
            if not member.startswith(COMMAND_PREFIX) or not callable(value):
                continue
            name = member[len(COMMAND_PREFIX):]
            if not name:
                continue
            doc = (getattr(value, "__doc__", None) or "").strip()
            found[name] = CommandDescriptor(
                name=name,
                member=member,
                description=doc.splitlines()[0] if doc else "",
            )
    return tuple(found.values())


def build_pattern(trigger: str, names: Iterable[str]) -> re.Pattern[str] | None:
    """
    构建触发模式：<触发前缀>(名称1|名称2|...)(?:\\s(.*))?
    Build the trigger pattern ``<trigger>(name1|name2|...)(?:\\s(.*))?``.

    没有命令时返回 None。
    Returns None when there are no command names.
    """
    names = list(names)
    if not names:
        return None
    alternation = "|".join(re.escape(name) for name in names)
    return re.compile(rf"{re.escape(trigger)}({alternation})(?:\s(.*))?")


def match_command(
    text: str,
    trigger: str,
    names: Iterable[str],
) -> tuple[str, str | None] | None:
    """
    检查文本是否为命令调用
    Check whether ``text`` is a command invocation.

    返回 (命令名, 参数或 None)，不匹配时返回 None。整条文本必须匹配，
    因此较短的命令名不会遮蔽共享前缀的较长命令名。
    Returns ``(command, args or None)`` or None. The whole text must match,
    so a shorter name never shadows a longer one sharing its prefix.
    """
    pattern = build_pattern(trigger, names)
    if pattern is None:
        return None
    match = pattern.fullmatch(text)
    if match is None:
        return None
    return match.group(1), match.group(2)
