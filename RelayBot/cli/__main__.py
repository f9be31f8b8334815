"""`python -m RelayBot.cli` 的命令行启动入口。"""

from RelayBot.cli.main import cli

if __name__ == "__main__":
    cli()
