"""测试共享 fixture"""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from devenv.core import config as config_module


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """每个用例使用默认配置，不受宿主环境变量影响"""
    monkeypatch.delenv(config_module.PLATFORM_ENV_VAR, raising=False)
    monkeypatch.setattr(config_module, "_current", None)
    yield


@pytest.fixture(autouse=True)
def _restore_root_log_level() -> Iterator[None]:
    """恢复根日志器级别，避免 CLI 用例的 setup_logging 影响后续 caplog 用例"""
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)
