"""注册中心客户端

请求统一使用 JSON 信封:
    {"email": ..., "password": ..., "lucy_version": ..., "payload": ...}

响应体以 "Error" 开头即视为服务端失败，与 HTTP 状态码无关。

接口:
- POST /getPackage  按名称拉取归档（流式写入文件）
- POST /publish     发布归档（multipart/related: JSON 信封 + 二进制归档）
- POST /signup      注册账号
- POST /define      提交包元信息
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from lucy.core.exceptions import BuildIOError, ConfigError, NetworkError

if TYPE_CHECKING:
    from lucy.core.credentials import Credentials

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Error"
_CHUNK_SIZE = 64 * 1024
# 错误响应体最多保留的字节数
_ERROR_BODY_LIMIT = 4096


def _check_base_url(url: str) -> str:
    """注册中心地址须为 http(s)://host[:port]，来自 registry_host + registry_port 或 LUCY_HOST"""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ConfigError(f"注册中心地址无效（需 http(s)://host:port，可用 LUCY_HOST 覆盖）: {url}")
    try:
        parsed.port  # noqa: B018
    except ValueError as e:
        raise ConfigError(f"注册中心端口无效: {url}") from e
    return url.rstrip("/")


def encode_multipart(parts: list[tuple[str, bytes]], boundary: str) -> bytes:
    """编码 multipart 请求体，parts 为 (content-type, body) 列表"""
    sep = f"--{boundary}".encode()
    chunks = [b"\r\n"]
    for content_type, body in parts:
        chunks.append(sep + b"\r\n")
        chunks.append(f"Content-Type: {content_type}\r\n\r\n".encode())
        chunks.append(body)
        chunks.append(b"\r\n")
    chunks.append(sep + b"--\r\n")
    return b"".join(chunks)


class RegistryClient:
    """注册中心 HTTP 客户端（urllib 实现）"""

    def __init__(
        self,
        base_url: str = "",
        protocol_version: str = "",
        timeout: int = 0,
    ) -> None:
        if not base_url or not protocol_version or not timeout:
            from lucy.core.config import get_config
            cfg = get_config()
            base_url = base_url or cfg.registry_url
            protocol_version = protocol_version or cfg.protocol_version
            timeout = timeout or cfg.network_timeout
        self.base_url = _check_base_url(base_url)
        self.protocol_version = protocol_version
        self.timeout = timeout

    def envelope(self, creds: Credentials, payload: Any) -> dict[str, Any]:
        return {
            "email": creds.identity,
            "password": creds.secret,
            "lucy_version": self.protocol_version,
            "payload": payload,
        }

    # ---- 底层请求 ----

    def _request(self, endpoint: str, data: bytes, content_type: str) -> urllib.request.Request:
        req = urllib.request.Request(
            f"{self.base_url}/{endpoint}", data=data, method="POST",
        )
        req.add_header("Content-Type", content_type)
        return req

    def _post(self, endpoint: str, data: bytes, content_type: str) -> str:
        req = self._request(endpoint, data, content_type)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:  # nosec B310
                body = resp.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            _check_body(body, endpoint)
            raise NetworkError(f"注册中心请求失败 /{endpoint}: HTTP {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            logger.error("无法连接注册中心 %s: %s", self.base_url, e)
            raise NetworkError(f"无法连接注册中心 /{endpoint}: {e}") from e
        _check_body(body, endpoint)
        return body

    def _post_json(self, endpoint: str, body: dict[str, Any]) -> str:
        data = json.dumps(body).encode("utf-8")
        return self._post(endpoint, data, "application/json")

    # ---- 业务接口 ----

    def fetch_archive(self, creds: Credentials, name: str, dest: Path) -> Path:
        """拉取包归档，流式写入 dest"""
        logger.info("从注册中心拉取: %s", name)
        data = json.dumps(self.envelope(creds, name)).encode("utf-8")
        req = self._request("getPackage", data, "application/json")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp, \
                    open(dest, "wb") as out:  # nosec B310
                for chunk in iter(lambda: resp.read(_CHUNK_SIZE), b""):
                    out.write(chunk)
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            _check_body(body, "getPackage")
            raise NetworkError(f"拉取 {name} 失败: HTTP {e.code}") from e
        except (urllib.error.URLError, ConnectionError, TimeoutError) as e:
            raise NetworkError(f"拉取 {name} 失败: {e}") from e
        except OSError as e:
            raise BuildIOError(f"写入归档失败 {dest}: {e}") from e

        with open(dest, "rb") as f:
            head = f.read(_ERROR_BODY_LIMIT)
        if head.startswith(ERROR_PREFIX.encode()):
            _check_body(head.decode("utf-8", errors="replace"), "getPackage")
        logger.info("  已保存归档: %s (%d 字节)", dest, dest.stat().st_size)
        return dest

    def publish(self, creds: Credentials, definition: dict[str, Any], tarball: bytes) -> str:
        """发布包归档"""
        boundary = uuid.uuid4().hex
        body = encode_multipart([
            ("application/json", json.dumps(self.envelope(creds, definition)).encode("utf-8")),
            ("application/octet-stream", tarball),
        ], boundary)
        return self._post("publish", body, f"multipart/related; boundary={boundary}")

    def signup(self, creds: Credentials) -> str:
        """注册新账号"""
        return self._post_json("signup", self.envelope(creds, {}))

    def define(self, creds: Credentials, definition: dict[str, Any]) -> str:
        """提交包元信息"""
        return self._post_json("define", self.envelope(creds, definition))


def _check_body(body: str, endpoint: str) -> None:
    if body.startswith(ERROR_PREFIX):
        logger.error("注册中心返回错误 /%s: %s", endpoint, body[:_ERROR_BODY_LIMIT])
        raise NetworkError(f"注册中心错误 /{endpoint}: {body[:300]}")
