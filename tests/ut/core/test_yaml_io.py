"""YAML 读写与日志格式测试"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from devenv.utils import yaml_io
from devenv.utils.logger import JSONFormatter
from devenv.utils.yaml_io import atomic_write, load_yaml, save_yaml


class TestLoadYaml:
    def test_missing_file(self, tmp_path: Path) -> None:
        assert load_yaml(tmp_path / "none.yml") == {}

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yml"
        path.write_text("", encoding="utf-8")
        assert load_yaml(path) == {}

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        assert load_yaml(path) == {}

    def test_too_large(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "big.yml"
        path.write_text("a: 1\n", encoding="utf-8")
        monkeypatch.setattr(yaml_io, "MAX_YAML_SIZE", 2)
        with pytest.raises(ValueError, match="过大"):
            load_yaml(path)


class TestSaveYaml:
    def test_roundtrip_keeps_order(self, tmp_path: Path) -> None:
        path = tmp_path / "out" / "artifacts.yml"
        save_yaml(path, {"platform": "x86_64-unknown-linux-gnu", "deps": {"工具": {"a": "/x"}}})
        assert list(load_yaml(path)) == ["platform", "deps"]
        assert "工具" in path.read_text(encoding="utf-8")

    def test_atomic_write_no_temp_left(self, tmp_path: Path) -> None:
        path = tmp_path / "f.yml"
        atomic_write(path, "a: 1\n")
        atomic_write(path, "a: 2\n")
        assert [p.name for p in tmp_path.iterdir()] == ["f.yml"]
        assert load_yaml(path) == {"a": 2}


class TestJSONFormatter:
    def test_fields(self) -> None:
        record = logging.LogRecord(
            "devenv.core.dep_manager", logging.WARNING, __file__, 1,
            "依赖 '%s' 来源失败", ("rg",), None,
        )
        entry = json.loads(JSONFormatter().format(record))
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "devenv.core.dep_manager"
        assert entry["message"] == "依赖 'rg' 来源失败"
        assert "thread" in entry
