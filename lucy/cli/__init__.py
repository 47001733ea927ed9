"""lucy 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os
from typing import Any

import click

from lucy import __version__
from lucy.core.config import DEFAULT_SETTINGS_FILE, init_config
from lucy.core.exceptions import LucyError
from lucy.services.container import get_container, reset_container
from lucy.utils.logger import setup_logging


def _svc() -> Any:
    """获取全局服务容器的快捷方式"""
    return get_container()


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--settings", default=DEFAULT_SETTINGS_FILE, show_default=True,
    help="工具配置文件（YAML，不存在则使用默认值）",
)
def main(settings: str) -> None:
    """lucy - 包构建编排工具"""
    setup_logging(
        level=os.getenv("LUCY_LOG_LEVEL", "INFO"),
        json_output=os.getenv("LUCY_LOG_JSON", "") == "1",
    )
    try:
        init_config(settings)
    except LucyError as e:
        raise click.ClickException(f"[{e.code}] {e}") from e
    reset_container()


# 注册各领域子命令
from lucy.cli.cmd_build import register as _reg_build  # noqa: E402
from lucy.cli.cmd_registry import register as _reg_registry  # noqa: E402

_reg_build(main)
_reg_registry(main)
