"""日志配置测试 - 构建上下文字段"""

from __future__ import annotations

import json
import logging
import sys

from lucy.core.exceptions import TemplateRenderError
from lucy.utils.logger import BuildTextFormatter, JSONFormatter, build_fields, reset_logging, setup_logging


def _record(msg: str, *args, extra: dict | None = None, exc_info=None) -> logging.LogRecord:  # noqa: ANN001
    record = logging.LogRecord("lucy.core.builder", logging.ERROR, __file__, 10, msg, args, exc_info)
    for key, value in (extra or {}).items():
        setattr(record, key, value)
    return record


class TestBuildFields:
    def test_plain(self) -> None:
        assert build_fields("site", "files") == {"source": "site", "stage": "files"}

    def test_error_code_from_lucy_error(self) -> None:
        fields = build_fields("site", "files", TemplateRenderError("x"))
        assert fields["error_code"] == "TEMPLATE_ERROR"

    def test_foreign_error_has_no_code(self) -> None:
        assert "error_code" not in build_fields("site", "files", RuntimeError("x"))


class TestJSONFormatter:
    def test_context_fields(self) -> None:
        record = _record("构建失败: %s", "site", extra=build_fields("site", "scripts"))
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "构建失败: site"
        assert entry["level"] == "ERROR"
        assert entry["source"] == "site"
        assert entry["stage"] == "scripts"
        assert "error_code" not in entry

    def test_without_context(self) -> None:
        entry = json.loads(JSONFormatter().format(_record("hello")))
        assert "source" not in entry
        assert "stage" not in entry

    def test_error_code_from_exc_info(self) -> None:
        try:
            raise TemplateRenderError("渲染失败 a.txt")
        except TemplateRenderError:
            record = _record("失败", exc_info=sys.exc_info())
        entry = json.loads(JSONFormatter().format(record))
        assert entry["error_code"] == "TEMPLATE_ERROR"
        assert "渲染失败 a.txt" in entry["exception"]


class TestBuildTextFormatter:
    def test_prefix(self) -> None:
        line = BuildTextFormatter().format(_record("构建: %s", "site", extra=build_fields("site", "fetch")))
        assert line.endswith("lucy.core.builder: [site:fetch] 构建: site")

    def test_no_prefix_without_context(self) -> None:
        assert BuildTextFormatter().format(_record("hello")).endswith("lucy.core.builder: hello")


class TestSetupLogging:
    def test_setup_replaces_handlers(self) -> None:
        try:
            setup_logging("DEBUG")
            assert isinstance(logging.getLogger().handlers[0].formatter, BuildTextFormatter)
            setup_logging("WARNING", json_output=True)
            root = logging.getLogger()
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
            assert root.level == logging.WARNING
        finally:
            reset_logging()
            logging.getLogger().setLevel(logging.WARNING)
