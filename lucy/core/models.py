"""构建领域数据模型

数据类:
- TransformMethod: 文件处理方式（render / copy）
- FileMapping: 单个文件映射 from → to
- PackageDefinition: package.json 解析结果
- ScriptContext: 传给构建后脚本的目录上下文
- BuildReport: 一次构建（含嵌套依赖）的执行报告
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from lucy.core.exceptions import ParseError, ValidationError
from lucy.utils.json_io import load_json

PACKAGE_DEF_FILE = "package.json"


class TransformMethod(enum.Enum):
    """文件处理方式"""

    RENDER = "render"
    COPY = "copy"

    @classmethod
    def parse(cls, value: Any) -> TransformMethod:
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ParseError(
                f"不支持的文件处理方式: {value!r}，可选: {allowed}"
            ) from None


def resolve_within(base: Path, rel: str, label: str) -> Path:
    """将相对路径拼到 base 下，禁止通过 .. 或绝对路径逃逸"""
    root = base.resolve()
    resolved = (root / rel).resolve()
    if resolved != root and root not in resolved.parents:
        raise ValidationError(f"{label} 路径超出目录 {base}: {rel}")
    return resolved


@dataclass(frozen=True)
class FileMapping:
    """文件映射: source 相对工作目录，target 相对输出目录"""

    source: str
    target: str
    method: TransformMethod = TransformMethod.COPY

    @classmethod
    def from_dict(cls, data: Any) -> FileMapping:
        if not isinstance(data, dict):
            raise ParseError(f"files 条目必须是对象: {data!r}")
        src = data.get("from")
        dst = data.get("to")
        if not isinstance(src, str) or not src:
            raise ParseError(f"files 条目缺少 from: {data!r}")
        if not isinstance(dst, str) or not dst:
            raise ParseError(f"files 条目缺少 to: {data!r}")
        return cls(
            source=src,
            target=dst,
            method=TransformMethod.parse(data.get("method", "copy")),
        )

    def resolve(self, work_dir: Path, dest_dir: Path) -> FileMapping:
        """返回 source/target 均为绝对路径的新映射"""
        return replace(
            self,
            source=str(resolve_within(work_dir, self.source, "from")),
            target=str(resolve_within(dest_dir, self.target, "to")),
        )


@dataclass
class PackageDefinition:
    """package.json 中与构建相关的三段: dependencies / files / scripts"""

    name: str = ""
    dependencies: dict[str, Any] = field(default_factory=dict)
    files: list[FileMapping] = field(default_factory=list)
    scripts: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PackageDefinition:
        deps = data.get("dependencies") or {}
        if not isinstance(deps, dict):
            raise ParseError("dependencies 必须是对象")

        files = data.get("files") or []
        if not isinstance(files, list):
            raise ParseError("files 必须是数组")

        scripts = data.get("scripts") or []
        if not isinstance(scripts, list) or not all(
            isinstance(s, str) and s for s in scripts
        ):
            raise ParseError("scripts 必须是非空字符串数组")

        return cls(
            name=str(data.get("name", "")),
            dependencies=dict(deps),
            files=[FileMapping.from_dict(f) for f in files],
            scripts=list(scripts),
        )

    @classmethod
    def load(cls, work_dir: Path) -> PackageDefinition:
        """读取工作目录根下的 package.json，缺失或格式错误抛 ParseError"""
        path = work_dir / PACKAGE_DEF_FILE
        return cls.from_dict(load_json(path, label=PACKAGE_DEF_FILE))


@dataclass(frozen=True)
class ScriptContext:
    """构建后脚本看到的目录上下文"""

    src_dir: Path
    dest_dir: Path


@dataclass
class BuildReport:
    """单次构建报告（依赖构建的报告嵌套在 dependencies 中）"""

    source: str
    name: str = ""
    files: list[Path] = field(default_factory=list)
    scripts_run: int = 0
    dependencies: list[BuildReport] = field(default_factory=list)
    duration: float = 0.0

    @property
    def total_files(self) -> int:
        return len(self.files) + sum(d.total_files for d in self.dependencies)
