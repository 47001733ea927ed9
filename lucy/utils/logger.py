"""lucy 日志配置

构建过程的日志可携带构建上下文（通过 logging 的 extra 传入）:

    logger.info("构建: %s", source, extra=build_fields(source, "fetch"))

- source: 正在构建的包（注册中心包名或仓库地址）
- stage:  fetch / dependencies / files / scripts / release / done

文本格式在消息前加 [source:stage] 前缀；JSON 格式输出为独立字段，
异常为 LucyError 时额外输出其 code，便于 CI 按错误类型归类。
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from lucy.core.exceptions import LucyError

_CONTEXT_FIELDS = ("source", "stage")


def build_fields(source: str, stage: str, error: BaseException | None = None) -> dict[str, Any]:
    """生成 extra 参数；error 为 LucyError 时附带其 code"""
    fields: dict[str, Any] = {"source": source, "stage": stage}
    if isinstance(error, LucyError):
        fields["error_code"] = error.code
    return fields


def _context_of(record: logging.LogRecord) -> dict[str, str]:
    return {k: getattr(record, k) for k in _CONTEXT_FIELDS if getattr(record, k, None)}


class BuildTextFormatter(logging.Formatter):
    """人类可读格式，带构建上下文前缀"""

    def __init__(self) -> None:
        super().__init__("%(asctime)s [%(levelname)-7s] %(name)s: %(message)s")

    def formatMessage(self, record: logging.LogRecord) -> str:  # noqa: N802
        line = super().formatMessage(record)
        ctx = _context_of(record)
        if not ctx:
            return line
        prefix = ":".join(ctx[k] for k in _CONTEXT_FIELDS if k in ctx)
        head, sep, message = line.partition(": ")
        return f"{head}{sep}[{prefix}] {message}"


class JSONFormatter(logging.Formatter):
    """结构化 JSON 日志，一行一条

    输出示例:
        {"timestamp": "...", "level": "ERROR", "logger": "lucy.core.builder",
         "message": "构建失败: site", "source": "site", "stage": "files",
         "error_code": "TEMPLATE_ERROR", "exception": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
        }
        entry.update(_context_of(record))
        code = getattr(record, "error_code", None)
        if record.exc_info and isinstance(record.exc_info[1], LucyError):
            code = record.exc_info[1].code
        if code:
            entry["error_code"] = code
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """配置根日志器，输出到 stderr（stdout 留给命令输出），重复调用不叠加 handler"""
    reset_logging()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if json_output else BuildTextFormatter())
    root.addHandler(handler)


def reset_logging() -> None:
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
