"""文件处理管线 - 渲染 / 复制

每个文件映射作为一个独立任务提交到有界线程池（扇出），
全部任务完成后才返回（汇合）；任一任务失败即整体失败，
已写出的文件保留在输出目录中，不做回滚。

模板语法（EJS 风格定界符，表达式语义由 Jinja2 提供）:
    <%= name %>             输出变量
    <% if debug %>...<% endif %>
    <%# 注释 %>
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, Sequence

import jinja2

from lucy.core.exceptions import BuildIOError, TemplateRenderError
from lucy.core.models import FileMapping, TransformMethod
from lucy.utils.yaml_io import atomic_write

if TYPE_CHECKING:
    from lucy.core.cancel import CancelToken

logger = logging.getLogger(__name__)


class TemplateRenderer:
    """模板渲染器（Jinja2 + EJS 定界符）"""

    def __init__(self) -> None:
        self._env = jinja2.Environment(
            block_start_string="<%",
            block_end_string="%>",
            variable_start_string="<%=",
            variable_end_string="%>",
            comment_start_string="<%#",
            comment_end_string="%>",
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,  # noqa: S701
        )

    def render(self, text: str, context: Mapping[str, Any], *, name: str = "") -> str:
        try:
            return self._env.from_string(text).render(dict(context))
        except jinja2.TemplateError as e:
            raise TemplateRenderError(f"渲染失败 {name or '<string>'}: {e}") from e
        except Exception as e:
            # 表达式求值期间的运行时错误（类型不匹配、除零等）
            raise TemplateRenderError(
                f"渲染失败 {name or '<string>'}: {type(e).__name__}: {e}"
            ) from e


class FileTransformPipeline:
    """文件渲染/复制管线"""

    def __init__(
        self,
        renderer: TemplateRenderer | None = None,
        max_workers: int = 0,
        cancel: CancelToken | None = None,
    ) -> None:
        if not max_workers:
            from lucy.core.config import get_config
            max_workers = get_config().max_workers
        self.renderer = renderer or TemplateRenderer()
        self.max_workers = max_workers
        self.cancel = cancel

    def apply(
        self,
        mappings: Sequence[FileMapping],
        work_dir: Path,
        dest_dir: Path,
        config: Mapping[str, Any],
    ) -> list[Path]:
        """处理全部文件映射，返回写出的目标文件列表（按完成顺序）"""
        if not mappings:
            logger.info("没有需要处理的文件")
            return []

        resolved = [m.resolve(work_dir, dest_dir) for m in mappings]
        workers = min(self.max_workers, len(resolved))
        logger.info("处理 %d 个文件 (并发 %d)", len(resolved), workers)

        written: list[Path] = []
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="lucy-file") as executor:
            pending: set[Future[Path]] = {
                executor.submit(self._transform_one, m, config) for m in resolved
            }
            while pending:
                done, pending = wait(pending, return_when=FIRST_EXCEPTION)
                failed = [f for f in done if f.exception() is not None]
                written.extend(f.result() for f in done if f.exception() is None)
                if failed:
                    for f in pending:
                        f.cancel()
                    logger.error(
                        "文件处理失败，已完成 %d/%d 个", len(written), len(resolved),
                    )
                    raise failed[0].exception()  # type: ignore[misc]

        if len(written) != len(resolved):
            raise BuildIOError(
                f"文件处理数量不一致: 期望 {len(resolved)}, 实际 {len(written)}"
            )
        logger.info("已生成 %d 个文件", len(written))
        return written

    def _transform_one(self, mapping: FileMapping, config: Mapping[str, Any]) -> Path:
        if self.cancel is not None:
            self.cancel.raise_if_cancelled(f"file {mapping.source}")
        src = Path(mapping.source)
        dest = Path(mapping.target)

        if mapping.method is TransformMethod.RENDER:
            text = _read(src, lambda p: p.read_text(encoding="utf-8"))
            content: str | bytes = self.renderer.render(text, config, name=src.name)
        elif mapping.method is TransformMethod.COPY:
            content = _read(src, Path.read_bytes)
        else:
            raise AssertionError(f"未处理的文件处理方式: {mapping.method}")

        try:
            atomic_write(dest, content)
        except OSError as e:
            raise BuildIOError(f"写入文件失败 {dest}: {e}") from e
        logger.debug("  %s: %s -> %s", mapping.method.value, src, dest)
        return dest


def _read(path: Path, reader: Any) -> Any:
    try:
        return reader(path)
    except (OSError, UnicodeDecodeError) as e:
        raise BuildIOError(f"读取文件失败 {path}: {e}") from e
