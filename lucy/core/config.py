"""集中配置管理

工具自身的配置（注册中心地址、临时目录、并发度、超时），
支持从 YAML 文件加载 + 环境变量覆盖 + 编程式覆盖。

注意: 这里的配置与「构建配置」无关，后者是用户传入的 JSON 文档，
原样作为模板上下文和脚本参数使用。
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

import yaml

from lucy.core.exceptions import ConfigError
from lucy.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = "configs/default.yml"


@dataclass
class Config:
    """工具全局配置"""

    # 注册中心
    registry_host: str = "http://lucyreg.bbrennan.info"
    registry_port: int = 3000
    protocol_version: str = "0.1.0"

    # 目录（为空时使用系统临时目录下的 lucytmp）
    work_root: str = ""

    # 执行
    max_workers: int = 8
    network_timeout: int = 60
    command_timeout: int = 3600

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ConfigError(f"max_workers 必须 >= 1，当前: {self.max_workers}")
        if not self.work_root:
            self.work_root = str(Path(tempfile.gettempdir()) / "lucytmp")

    @property
    def registry_url(self) -> str:
        return f"{self.registry_host.rstrip('/')}:{self.registry_port}"

    @classmethod
    def from_file(cls, path: str = DEFAULT_SETTINGS_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认；LUCY_HOST 环境变量优先"""
        try:
            data = load_yaml(path)
        except (yaml.YAMLError, ValueError, OSError) as e:
            raise ConfigError(f"无法读取配置文件 {path}: {e}") from e
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known}
        unknown = sorted(str(k) for k in data if k not in known)
        if unknown:
            logger.warning("忽略未知配置项 %s: %s", path, ", ".join(unknown))
        host = os.getenv("LUCY_HOST", "")
        if host:
            matched["registry_host"] = host
        try:
            return cls(**matched)
        except TypeError as e:
            raise ConfigError(f"配置文件内容无效 {path}: {e}") from e


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_SETTINGS_FILE) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
