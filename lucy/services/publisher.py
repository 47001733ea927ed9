"""包发布服务 - 打包 / 发布 / 元信息 / 注册账号"""

from __future__ import annotations

import io
import logging
import tarfile
from pathlib import Path
from typing import TYPE_CHECKING

from lucy.core.exceptions import BuildIOError, ValidationError
from lucy.core.models import PACKAGE_DEF_FILE
from lucy.utils.json_io import load_json

if TYPE_CHECKING:
    from lucy.core.credentials import CredentialCache
    from lucy.services.registry import RegistryClient

logger = logging.getLogger(__name__)

_SKIP_DIRS = frozenset((".git", "__pycache__"))
_SKIP_FILES = frozenset(("README.md",))


def _should_skip(rel: Path) -> bool:
    if any(part in _SKIP_DIRS for part in rel.parts):
        return True
    return rel.name in _SKIP_FILES or rel.suffix == ".tgz"


def pack_directory(src: Path) -> bytes:
    """将目录打成 tar.gz（成员路径相对 src），跳过 .git / README.md / *.tgz"""
    if not src.is_dir():
        raise ValidationError(f"不是目录: {src}")
    buf = io.BytesIO()
    count = 0
    try:
        with tarfile.open(fileobj=buf, mode="w:gz") as tf:
            for path in sorted(src.rglob("*")):
                rel = path.relative_to(src)
                if not path.is_file() or _should_skip(rel):
                    continue
                tf.add(str(path), arcname=rel.as_posix())
                count += 1
    except (OSError, tarfile.TarError) as e:
        raise BuildIOError(f"打包失败 {src}: {e}") from e
    logger.info("已打包 %d 个文件: %s", count, src)
    return buf.getvalue()


class Publisher:
    """注册中心写操作"""

    def __init__(self, registry: RegistryClient, credentials: CredentialCache) -> None:
        self.registry = registry
        self.credentials = credentials

    def publish(self, package_dir: Path) -> str:
        """读取 package.json，打包目录并发布"""
        definition = load_json(package_dir / PACKAGE_DEF_FILE, label=PACKAGE_DEF_FILE)
        tarball = pack_directory(package_dir)
        body = self.registry.publish(self.credentials.credentials(), definition, tarball)
        logger.info("已发布: %s", definition.get("name", package_dir.name))
        return body

    def define(self, definition_file: Path) -> str:
        """提交包元信息文档"""
        definition = load_json(definition_file, label="包元信息")
        return self.registry.define(self.credentials.credentials(), definition)

    def signup(self) -> str:
        """用当前凭据注册账号"""
        return self.registry.signup(self.credentials.credentials())
