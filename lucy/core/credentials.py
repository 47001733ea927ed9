"""注册中心登录凭据缓存

首次需要时获取（环境变量或交互输入），之后整个进程内复用，只读共享。
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Callable

import click

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    """登录凭据（identity 为邮箱，secret 为密码）"""

    identity: str
    secret: str

    def __repr__(self) -> str:
        return f"Credentials(identity={self.identity!r}, secret='***')"


def prompt_credentials() -> Credentials:
    """获取凭据: 优先 LUCY_EMAIL / LUCY_PASSWORD 环境变量，否则交互输入"""
    email = os.getenv("LUCY_EMAIL", "")
    password = os.getenv("LUCY_PASSWORD", "")
    if email and password:
        logger.info("使用环境变量中的登录凭据: %s", email)
        return Credentials(identity=email, secret=password)
    email = email or click.prompt("邮箱", err=True)
    password = password or click.prompt("密码", hide_input=True, err=True)
    return Credentials(identity=email, secret=password)


class CredentialCache:
    """凭据缓存 - 保证进程内只获取一次（线程安全）"""

    def __init__(self, acquire: Callable[[], Credentials] | None = None) -> None:
        self._acquire = acquire or prompt_credentials
        self._cached: Credentials | None = None
        self._lock = threading.Lock()

    def credentials(self) -> Credentials:
        if self._cached is not None:
            return self._cached
        with self._lock:
            if self._cached is None:
                logger.info("首次访问注册中心，获取登录凭据")
                self._cached = self._acquire()
            return self._cached

    @property
    def acquired(self) -> bool:
        return self._cached is not None
