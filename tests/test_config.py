"""Unit tests for core/config.py -- SECRET_KEY policy and token lifetimes."""

from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from core.config import Settings


def test_debug_mode_generates_secret(monkeypatch) -> None:
    monkeypatch.delenv("SECRET_KEY", raising=False)
    settings = Settings(debug=True, _env_file=None)
    assert len(settings.secret_key) >= 32


def test_production_requires_secret(monkeypatch) -> None:
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(debug=False, _env_file=None)


def test_short_secret_rejected() -> None:
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(debug=True, secret_key="too-short", _env_file=None)


def test_default_lifetimes() -> None:
    settings = Settings(debug=True, _env_file=None)
    assert settings.access_token_lifetime == timedelta(hours=1)
    assert settings.refresh_token_lifetime == timedelta(days=60)


def test_lifetimes_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_SECONDS", "900")
    monkeypatch.setenv("REFRESH_TOKEN_EXPIRE_DAYS", "7")
    settings = Settings(debug=True, _env_file=None)
    assert settings.access_token_lifetime == timedelta(minutes=15)
    assert settings.refresh_token_lifetime == timedelta(days=7)


def test_non_positive_lifetime_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(debug=True, access_token_expire_seconds=0, _env_file=None)
