"""JSON 文档读取 - 构建配置与 package.json

与 yaml_io 不同，这里读到的文档是构建的输入，
缺失或格式错误一律视为致命的 ParseError，而不是返回空字典。
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from lucy.core.exceptions import ParseError

logger = logging.getLogger(__name__)

MAX_JSON_SIZE = 10 * 1024 * 1024


def load_json(path: str | Path, *, label: str = "JSON") -> dict[str, Any]:
    """读取并解析 JSON 对象文档

    参数:
        path: 文件路径
        label: 错误信息中的文档名称（如 "package.json"、"构建配置"）

    异常:
        ParseError: 文件不存在、不可读、过大、格式错误或根节点不是对象
    """
    p = Path(path)
    try:
        size = p.stat().st_size
        if size > MAX_JSON_SIZE:
            raise ParseError(
                f"{label} 文件过大: {p} ({size} 字节), 超过限制 {MAX_JSON_SIZE} 字节"
            )
        text = p.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ParseError(f"{label} 不存在: {p}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(f"读取 {label} 失败: {p} - {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error("解析 %s 失败: %s", label, p)
        raise ParseError(f"{label} 格式错误 {p}: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(
            f"{label} 根节点必须是对象 (实际类型: {type(data).__name__}): {p}"
        )
    return data
