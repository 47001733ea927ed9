"""文件处理管线测试 - 渲染 / 复制 / 汇合 / 失败保留"""

from __future__ import annotations

import os
import threading
import time
from pathlib import Path

import pytest

from lucy.core.cancel import CancelToken
from lucy.core.exceptions import BuildCancelledError, BuildIOError, TemplateRenderError, ValidationError
from lucy.core.models import FileMapping, TransformMethod
from lucy.core.transform import FileTransformPipeline, TemplateRenderer

RENDER = TransformMethod.RENDER
COPY = TransformMethod.COPY


@pytest.fixture()
def dirs(tmp_path: Path) -> tuple[Path, Path]:
    work = tmp_path / "work"
    dest = tmp_path / "dest"
    work.mkdir()
    dest.mkdir()
    return work, dest


class TestTemplateRenderer:
    def test_render_variable(self) -> None:
        assert TemplateRenderer().render("Hello <%= name %>", {"name": "World"}) == "Hello World"

    def test_render_block_and_comment(self) -> None:
        text = "<%# note %><% if debug %>dbg<% else %>rel<% endif %>\n"
        assert TemplateRenderer().render(text, {"debug": False}) == "rel\n"

    def test_plain_braces_untouched(self) -> None:
        text = "{{ not a var }} {% raw %}"
        assert TemplateRenderer().render(text, {}) == text

    def test_undefined_variable_raises(self) -> None:
        with pytest.raises(TemplateRenderError, match="missing"):
            TemplateRenderer().render("<%= missing %>", {}, name="t.txt")

    def test_syntax_error_raises(self) -> None:
        with pytest.raises(TemplateRenderError, match="t.txt"):
            TemplateRenderer().render("<% if %>", {}, name="t.txt")

    @pytest.mark.parametrize("text, context", [
        ("<%= count + 1 %>", {"count": "3"}),
        ("<%= 1 / zero %>", {"zero": 0}),
    ])
    def test_runtime_expression_error_raises(self, text: str, context: dict) -> None:
        with pytest.raises(TemplateRenderError, match="t.txt"):
            TemplateRenderer().render(text, context, name="t.txt")


class TestApply:
    def test_empty_list_completes_immediately(self, dirs: tuple[Path, Path]) -> None:
        work, dest = dirs
        pipeline = FileTransformPipeline(max_workers=4)
        assert pipeline.apply([], work, dest, {}) == []
        assert list(dest.iterdir()) == []

    def test_render_mapping(self, dirs: tuple[Path, Path]) -> None:
        work, dest = dirs
        (work / "greet.txt").write_text("Hello <%= name %>", encoding="utf-8")
        pipeline = FileTransformPipeline(max_workers=2)

        written = pipeline.apply(
            [FileMapping("greet.txt", "out/greet.txt", RENDER)], work, dest, {"name": "World"},
        )

        assert written == [(dest / "out" / "greet.txt").resolve()]
        assert (dest / "out" / "greet.txt").read_text(encoding="utf-8") == "Hello World"

    def test_copy_mapping_is_byte_identical(self, dirs: tuple[Path, Path]) -> None:
        work, dest = dirs
        payload = bytes(range(256)) * 64 + b"<%= name %>"
        (work / "blob.bin").write_bytes(payload)
        pipeline = FileTransformPipeline(max_workers=2)

        pipeline.apply([FileMapping("blob.bin", "blob.bin", COPY)], work, dest, {"name": "x"})

        assert (dest / "blob.bin").read_bytes() == payload

    @pytest.mark.parametrize("count", [1, 5, 40])
    def test_completion_count_matches_mapping_count(self, dirs: tuple[Path, Path], count: int) -> None:
        work, dest = dirs
        mappings = []
        for i in range(count):
            (work / f"f{i}.txt").write_text(f"<%= v %>-{i}", encoding="utf-8")
            method = RENDER if i % 2 else COPY
            mappings.append(FileMapping(f"f{i}.txt", f"o{i}.txt", method))
        pipeline = FileTransformPipeline(max_workers=3)

        written = pipeline.apply(mappings, work, dest, {"v": "x"})

        assert len(written) == count
        assert sorted(p.name for p in dest.iterdir()) == sorted(f"o{i}.txt" for i in range(count))
        if count > 1:
            assert (dest / "o1.txt").read_text(encoding="utf-8") == "x-1"
            assert (dest / "o0.txt").read_text(encoding="utf-8") == "<%= v %>-0"

    def test_concurrency_bounded_by_max_workers(self, dirs: tuple[Path, Path], monkeypatch: pytest.MonkeyPatch) -> None:
        work, dest = dirs
        for i in range(12):
            (work / f"f{i}").write_bytes(b"x")
        active = 0
        peak = 0
        lock = threading.Lock()
        real_read = Path.read_bytes

        def slow_read(self: Path) -> bytes:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.02)
            with lock:
                active -= 1
            return real_read(self)

        monkeypatch.setattr(Path, "read_bytes", slow_read)
        pipeline = FileTransformPipeline(max_workers=3)
        pipeline.apply([FileMapping(f"f{i}", f"o{i}", COPY) for i in range(12)], work, dest, {})

        assert 1 <= peak <= 3

    def test_render_failure_keeps_completed_outputs(self, dirs: tuple[Path, Path]) -> None:
        work, dest = dirs
        (work / "ok.txt").write_text("fine", encoding="utf-8")
        (work / "bad.txt").write_text("<%= missing %>", encoding="utf-8")
        pipeline = FileTransformPipeline(max_workers=1)

        with pytest.raises(TemplateRenderError):
            pipeline.apply([
                FileMapping("ok.txt", "ok.txt", COPY),
                FileMapping("bad.txt", "bad.txt", RENDER),
            ], work, dest, {})

        assert (dest / "ok.txt").read_text(encoding="utf-8") == "fine"
        assert not (dest / "bad.txt").exists()

    def test_expression_error_in_render_mapping(self, dirs: tuple[Path, Path]) -> None:
        work, dest = dirs
        (work / "n.txt").write_text("<%= count + 1 %>", encoding="utf-8")

        with pytest.raises(TemplateRenderError, match="TypeError"):
            FileTransformPipeline(max_workers=2).apply(
                [FileMapping("n.txt", "n.txt", RENDER)], work, dest, {"count": "3"},
            )
        assert not (dest / "n.txt").exists()

    def test_missing_source_raises_io_error(self, dirs: tuple[Path, Path]) -> None:
        work, dest = dirs
        pipeline = FileTransformPipeline(max_workers=2)
        with pytest.raises(BuildIOError, match="读取文件失败"):
            pipeline.apply([FileMapping("nope.txt", "x.txt", COPY)], work, dest, {})

    def test_target_escaping_dest_rejected(self, dirs: tuple[Path, Path]) -> None:
        work, dest = dirs
        (work / "a.txt").write_text("a")
        pipeline = FileTransformPipeline(max_workers=2)
        with pytest.raises(ValidationError, match="超出目录"):
            pipeline.apply([FileMapping("a.txt", "../evil.txt", COPY)], work, dest, {})
        assert not (dest.parent / "evil.txt").exists()

    def test_cancelled_before_start(self, dirs: tuple[Path, Path]) -> None:
        work, dest = dirs
        (work / "a.txt").write_text("a")
        token = CancelToken()
        token.cancel("test")
        pipeline = FileTransformPipeline(max_workers=2, cancel=token)
        with pytest.raises(BuildCancelledError, match="test"):
            pipeline.apply([FileMapping("a.txt", "a.txt", COPY)], work, dest, {})
        assert not (dest / "a.txt").exists()

    def test_no_temp_files_left_behind(self, dirs: tuple[Path, Path]) -> None:
        work, dest = dirs
        (work / "a.txt").write_text("a")
        FileTransformPipeline(max_workers=2).apply(
            [FileMapping("a.txt", "a.txt", COPY)], work, dest, {},
        )
        assert [p for p in os.listdir(dest) if p.endswith(".tmp")] == []
