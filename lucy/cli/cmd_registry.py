"""CLI - 注册中心命令（注册账号 / 发布 / 元信息）"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from lucy.cli import _svc
from lucy.core.exceptions import LucyError

logger = logging.getLogger(__name__)


def register(group: click.Group) -> None:
    group.add_command(signup)
    group.add_command(publish)
    group.add_command(define)


def _fail(action: str, e: LucyError) -> click.ClickException:
    logger.error("%s失败 [%s]: %s", action, e.code, e)
    return click.ClickException(f"[{e.code}] {e}")


@click.command()
def signup() -> None:
    """在注册中心注册账号"""
    try:
        body = _svc().publisher.signup()
    except LucyError as e:
        raise _fail("注册", e) from e
    click.echo(body)


@click.command()
@click.argument("package_dir", default=".", type=click.Path(exists=True, file_okay=False))
def publish(package_dir: str) -> None:
    """打包 PACKAGE_DIR 并发布到注册中心"""
    try:
        body = _svc().publisher.publish(Path(package_dir))
    except LucyError as e:
        raise _fail("发布", e) from e
    click.echo(body)


@click.command()
@click.argument("definition_file", type=click.Path(exists=True, dir_okay=False))
def define(definition_file: str) -> None:
    """提交包元信息文档"""
    try:
        body = _svc().publisher.define(Path(definition_file))
    except LucyError as e:
        raise _fail("提交元信息", e) from e
    click.echo(body)
