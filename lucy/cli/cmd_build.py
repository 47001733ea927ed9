"""CLI - 构建命令"""

from __future__ import annotations

import logging
import signal
from pathlib import Path

import click

from lucy.cli import _svc
from lucy.core.cancel import CancelToken
from lucy.core.exceptions import BuildIOError, LucyError
from lucy.utils.json_io import load_json

logger = logging.getLogger(__name__)


def register(group: click.Group) -> None:
    group.add_command(build)


@click.command()
@click.argument("source", required=False, default="")
@click.argument("config", required=False, default="")
@click.option(
    "--dest", "-d", default=".", show_default=True,
    type=click.Path(file_okay=False), help="输出目录",
)
@click.option(
    "--workers", "-w", default=0, type=click.IntRange(min=0),
    help="文件处理并发数（0 表示使用配置值）",
)
def build(source: str, config: str, dest: str, workers: int) -> None:
    """构建 SOURCE（注册中心包名或 *.git 仓库地址），CONFIG 为构建配置 JSON"""
    if not source or not config:
        logger.info("未指定来源或构建配置，跳过")
        return

    svc = _svc()
    if workers:
        svc.config.max_workers = workers
    cancel = CancelToken()
    # SIGTERM 只置取消标记，构建在下一个检查点中止并清理工作目录
    previous = signal.signal(signal.SIGTERM, lambda _sig, _frame: cancel.cancel("SIGTERM"))
    try:
        build_config = load_json(config, label="构建配置")
        dest_dir = Path(dest).resolve()
        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BuildIOError(f"无法创建输出目录 {dest_dir}: {e}") from e
        report = svc.builder(dest_dir, cancel=cancel).build(source, build_config)
    except LucyError as e:
        logger.error("构建失败 [%s]: %s", e.code, e)
        raise click.ClickException(f"[{e.code}] {e}") from e
    finally:
        signal.signal(signal.SIGTERM, previous)

    click.echo(
        f"构建成功: {source} (文件 {report.total_files}, "
        f"依赖 {len(report.dependencies)}, {report.duration:.1f}s)"
    )
