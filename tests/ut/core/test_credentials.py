"""凭据缓存测试"""

from __future__ import annotations

import threading

import pytest

from lucy.core.credentials import CredentialCache, Credentials, prompt_credentials


class TestCredentialCache:
    def test_acquires_once(self) -> None:
        calls = []

        def acquire() -> Credentials:
            calls.append(1)
            return Credentials("a@b.c", "pw")

        cache = CredentialCache(acquire)
        assert cache.acquired is False
        first = cache.credentials()
        second = cache.credentials()
        assert first is second
        assert calls == [1]
        assert cache.acquired is True

    def test_concurrent_callers_acquire_once(self) -> None:
        calls = []
        gate = threading.Event()

        def acquire() -> Credentials:
            calls.append(1)
            gate.wait(1)
            return Credentials("a@b.c", "pw")

        cache = CredentialCache(acquire)
        results: list[Credentials] = []
        threads = [threading.Thread(target=lambda: results.append(cache.credentials())) for _ in range(8)]
        for t in threads:
            t.start()
        gate.set()
        for t in threads:
            t.join()
        assert calls == [1]
        assert len({id(r) for r in results}) == 1

    def test_secret_hidden_in_repr(self) -> None:
        assert "pw" not in repr(Credentials("a@b.c", "pw"))


class TestPromptCredentials:
    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LUCY_EMAIL", "env@example.com")
        monkeypatch.setenv("LUCY_PASSWORD", "envpw")
        assert prompt_credentials() == Credentials("env@example.com", "envpw")

    def test_prompts_when_environment_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LUCY_EMAIL", raising=False)
        monkeypatch.delenv("LUCY_PASSWORD", raising=False)
        answers = iter(["me@example.com", "typed"])
        monkeypatch.setattr("lucy.core.credentials.click.prompt", lambda *a, **kw: next(answers))
        assert prompt_credentials() == Credentials("me@example.com", "typed")
