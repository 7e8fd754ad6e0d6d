"""CLI 系统测试 - 清单 → 平台筛选 → 下载 → 产物映射"""

from __future__ import annotations

import hashlib
import io
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import yaml
from click.testing import CliRunner

from devenv.cli import main
from devenv.utils.logger import reset_logging

RG_BYTES = b"ripgrep-linux-binary"
FD_BYTES = b"fd-any-binary"
CONTENT = {
    "https://e.com/rg/rg-linux": RG_BYTES,
    "https://e.com/fd/fd": FD_BYTES,
}


@pytest.fixture()
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "devenv.yml").write_text(yaml.dump({"deps": {
        "rg": {"sources": [
            {"type": "url", "url": "https://e.com/rg/rg-mac", "platforms": ["darwin"]},
            {
                "type": "url", "url": "https://e.com/rg/rg-linux",
                "sha": hashlib.sha256(RG_BYTES).hexdigest(),
                "platforms": ["x86_64-unknown-linux"],
                "artifacts": {"rg": "rg-linux"},
            },
            {"type": "apt", "name": "ripgrep"},
        ]},
        "fd": {"sources": [{"type": "url", "url": "https://e.com/fd/fd"}]},
    }}, sort_keys=False), encoding="utf-8")

    def fake_urlopen(url: str, timeout: float = 0) -> Any:
        if url not in CONTENT:
            raise OSError(f"404 {url}")
        return io.BytesIO(CONTENT[url])

    monkeypatch.setattr("devenv.core.dep.fetcher.urllib.request.urlopen", fake_urlopen)
    yield tmp_path
    reset_logging()


def _invoke(*args: str) -> Any:
    runner = CliRunner()
    return runner.invoke(
        main, ["--config", "missing.yml", *args], env={"DEVENV_LOG_LEVEL": "ERROR"},
    )


class TestSetupCommand:
    def test_resolves_and_writes_map(self, workspace: Path) -> None:
        result = _invoke("setup", "--platform", "x86_64-unknown-linux-gnu")
        assert result.exit_code == 0, result.output
        assert "rg: url:https://e.com/rg/rg-linux" in result.output
        assert "fd: url:https://e.com/fd/fd" in result.output

        data = yaml.safe_load((workspace / ".devenv" / "artifacts.yml").read_text(encoding="utf-8"))
        assert data["platform"] == "x86_64-unknown-linux-gnu"
        rg_path = Path(data["deps"]["rg"]["rg"])
        assert rg_path.name == "rg-linux"
        assert rg_path.read_bytes() == RG_BYTES
        assert (workspace / ".devenv" / "deps" / "rg").resolve() in rg_path.parents
        assert set(data["deps"]["fd"]) == {"fd"}

    def test_fallback_exhausted_exit_code(self, workspace: Path) -> None:
        """darwin 主机: rg-mac 下载失败，apt 不支持，rg 整体失败但 fd 成功"""
        result = _invoke("setup", "--platform", "x86_64-apple-darwin-none")
        assert result.exit_code == 1
        assert "rg: [FAILED]" in result.output
        assert "fd: url:https://e.com/fd/fd" in result.output

    def test_deps_alias_and_name_filter(self, workspace: Path) -> None:
        result = _invoke(
            "deps", "--platform", "x86_64-unknown-linux-gnu", "--name", "fd", "--no-write",
        )
        assert result.exit_code == 0, result.output
        assert "fd:" in result.output
        assert "rg:" not in result.output
        assert not (workspace / ".devenv" / "artifacts.yml").exists()

    def test_unknown_name(self, workspace: Path) -> None:
        result = _invoke("setup", "--name", "nope", "--no-write")
        assert result.exit_code != 0
        assert "不在清单中" in result.output

    def test_invalid_platform(self, workspace: Path) -> None:
        result = _invoke("setup", "--platform", "x86_64-apple")
        assert result.exit_code != 0
        assert "无法解析平台标识" in result.output


class TestInspectCommands:
    def test_platform_override(self, workspace: Path) -> None:
        result = _invoke("platform", "--platform", "aarch64-unknown-linux-gnu")
        assert result.exit_code == 0
        assert "aarch64-unknown-linux-gnu" in result.output

    def test_platform_env_override(self, workspace: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main, ["--config", "missing.yml", "platform"],
            env={"DEVENV_LOG_LEVEL": "ERROR", "DEVENV_PLATFORM": "riscv64-unknown-linux-musl"},
        )
        assert result.exit_code == 0
        assert "riscv64-unknown-linux-musl" in result.output

    def test_sources_ranked(self, workspace: Path) -> None:
        result = _invoke("sources", "rg", "--platform", "x86_64-unknown-linux-gnu")
        assert result.exit_code == 0
        lines = [line.strip() for line in result.output.splitlines() if line.strip()[:2] in ("1.", "2.")]
        assert lines[0].startswith("1. url:https://e.com/rg/rg-linux")
        assert lines[1].startswith("2. apt:ripgrep")

    def test_sources_only_universal_left(self, workspace: Path) -> None:
        result = _invoke("sources", "rg", "--platform", "windows")
        # apt 来源适用于任意平台
        assert result.exit_code == 0
        assert "apt:ripgrep" in result.output
        assert "rg-linux" not in result.output

    def test_list(self, workspace: Path) -> None:
        result = _invoke("list")
        assert result.exit_code == 0
        assert "rg-mac" in result.output
        assert "apt:ripgrep" in result.output
        assert "fd" in result.output

    def test_list_empty(self, workspace: Path) -> None:
        result = _invoke("list", "--manifest", "nothing.yml")
        assert result.exit_code == 0
        assert "没有已声明的依赖" in result.output


class TestConfigOption:
    def test_invalid_config_value(self, workspace: Path) -> None:
        (workspace / "bad.yml").write_text("max_workers: many\n", encoding="utf-8")
        result = CliRunner().invoke(main, ["--config", "bad.yml", "platform"])
        assert result.exit_code != 0
        assert "配置加载失败" in result.output

    def test_config_file_applies(self, workspace: Path) -> None:
        (workspace / "cfg.yml").write_text(
            "platform: x86_64-pc-windows-msvc\n", encoding="utf-8",
        )
        result = CliRunner().invoke(main, ["--config", "cfg.yml", "platform"])
        assert result.exit_code == 0
        assert "x86_64-pc-windows-msvc" in result.output

    def test_malformed_config_yaml(self, workspace: Path) -> None:
        (workspace / "broken.yml").write_text("max_workers: [1, 2\n", encoding="utf-8")
        result = CliRunner().invoke(main, ["--config", "broken.yml", "platform"])
        assert result.exit_code == 1
        assert "配置加载失败" in result.output
        assert "Traceback" not in result.output

    def test_malformed_manifest_yaml(self, workspace: Path) -> None:
        (workspace / "broken.yml").write_text("deps:\n  rg: {sources: [\n", encoding="utf-8")
        result = _invoke("list", "--manifest", "broken.yml")
        assert result.exit_code == 1
        assert "清单加载失败" in result.output
