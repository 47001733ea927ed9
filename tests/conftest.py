"""测试公共夹具 - 内存注册中心 / 假 Git 来源 / 事件记录"""

from __future__ import annotations

import io
import json
import tarfile
from pathlib import Path
from typing import Any

import pytest

from lucy.core.credentials import CredentialCache, Credentials
from lucy.core.exceptions import NetworkError
from lucy.core.fetcher import PackageFetcher
from lucy.core.worktree import WorkingTreeManager


def make_tarball(files: dict[str, str | bytes]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for name, content in files.items():
            data = content.encode("utf-8") if isinstance(content, str) else content
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def package_files(definition: dict[str, Any], **files: str | bytes) -> dict[str, str | bytes]:
    """生成包内容: package.json + 其余文件（键名中的 __ 表示 /）"""
    result: dict[str, str | bytes] = {"package.json": json.dumps(definition)}
    for key, content in files.items():
        result[key.replace("__", "/")] = content
    return result


class FakeRegistry:
    """按包名返回内存归档，并记录调用事件"""

    def __init__(self, packages: dict[str, dict[str, str | bytes]], events: list[tuple[str, str]]) -> None:
        self.packages = packages
        self.events = events
        self.seen_creds: list[Credentials] = []

    def fetch_archive(self, creds: Credentials, name: str, dest: Path) -> Path:
        self.events.append(("fetch", name))
        self.seen_creds.append(creds)
        if name not in self.packages:
            raise NetworkError(f"注册中心错误 /getPackage: Error: no such package {name}")
        dest.write_bytes(make_tarball(self.packages[name]))
        return dest


class FakeGitSource:
    """把内存仓库内容写入工作目录代替 git clone"""

    def __init__(self, repos: dict[str, dict[str, str | bytes]], events: list[tuple[str, str]]) -> None:
        self.repos = repos
        self.events = events

    def clone(self, url: str, workspace: Path) -> Path:
        self.events.append(("clone", url))
        if url not in self.repos:
            raise NetworkError(f"git clone 失败 (rc=128) {url}: not found")
        for name, content in self.repos[url].items():
            path = workspace / name
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        return workspace


class RecordingTrees(WorkingTreeManager):
    """记录 release 事件的工作目录分配器"""

    def __init__(self, work_root: str, events: list[tuple[str, str]]) -> None:
        super().__init__(work_root)
        self.events = events
        self.released: list[Path] = []

    def release(self, path: Path) -> None:
        self.events.append(("release", Path(path).name))
        self.released.append(Path(path))
        super().release(path)


@pytest.fixture()
def events() -> list[tuple[str, str]]:
    return []


@pytest.fixture()
def login_calls() -> list[int]:
    return []


@pytest.fixture()
def credentials(login_calls: list[int]) -> CredentialCache:
    def acquire() -> Credentials:
        login_calls.append(1)
        return Credentials(identity="dev@example.com", secret="s3cret")
    return CredentialCache(acquire)


@pytest.fixture()
def trees(tmp_path: Path, events: list[tuple[str, str]]) -> RecordingTrees:
    return RecordingTrees(str(tmp_path / "work"), events)


@pytest.fixture()
def registry_packages() -> dict[str, dict[str, str | bytes]]:
    return {}


@pytest.fixture()
def git_repos() -> dict[str, dict[str, str | bytes]]:
    return {}


@pytest.fixture()
def fetcher(
    trees: RecordingTrees,
    credentials: CredentialCache,
    registry_packages: dict[str, dict[str, str | bytes]],
    git_repos: dict[str, dict[str, str | bytes]],
    events: list[tuple[str, str]],
) -> PackageFetcher:
    return PackageFetcher(
        trees=trees,
        credentials=credentials,
        registry=FakeRegistry(registry_packages, events),  # type: ignore[arg-type]
        git_source=FakeGitSource(git_repos, events),  # type: ignore[arg-type]
    )


@pytest.fixture()
def pkg():
    """包内容工厂: pkg(definition, **files)"""
    return package_files


@pytest.fixture()
def tarball():
    """归档工厂: tarball(files) -> bytes"""
    return make_tarball
