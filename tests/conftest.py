"""Shared fixtures: stand-in plutil and iconv scripts that record their argv."""

import stat
from pathlib import Path

import pytest

from copystrings.config import PipelineConfig, ToolPaths

FAKE_PLUTIL = """\
printf '%s\\n' "$*" >> "{log}"
case "$1" in
  -lint) {lint} ;;
  -convert) {convert} ;;
esac
"""

FAKE_ICONV = """\
printf '%s\\n' "$*" >> "{log}"
cp "$5" "{capture}"
{body}
"""


class FakeTool:
    """An executable shell script plus the log of its invocations."""

    def __init__(self, path: Path, log: Path) -> None:
        self.path = path
        self.log = log

    @property
    def calls(self) -> list[list[str]]:
        if not self.log.exists():
            return []
        return [line.split(" ") for line in self.log.read_text().splitlines()]


@pytest.fixture(autouse=True)
def _no_iconv_override(monkeypatch):
    monkeypatch.delenv("ICONV", raising=False)


@pytest.fixture
def make_tool(tmp_path):
    """Factory writing an executable /bin/sh script under tmp_path/bin."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def _make(name: str, body: str) -> FakeTool:
        path = bin_dir / name
        log = tmp_path / f"{name}.log"
        path.write_text("#!/bin/sh\n" + body.replace("{log}", str(log)))
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return FakeTool(path, log)

    return _make


@pytest.fixture
def iconv_capture(tmp_path) -> Path:
    """Where the fake iconv copies the file it was asked to convert."""
    return tmp_path / "iconv-input"


@pytest.fixture
def fake_plutil(make_tool):
    def _make(lint: str = "exit 0", convert: str = 'cp "$5" "$4"') -> FakeTool:
        return make_tool("plutil", FAKE_PLUTIL.replace("{lint}", lint).replace("{convert}", convert))

    return _make


@pytest.fixture
def fake_iconv(make_tool, iconv_capture):
    def _make(body: str = 'cat "$5"') -> FakeTool:
        script = FAKE_ICONV.replace("{capture}", str(iconv_capture)).replace("{body}", body)
        return make_tool("iconv", script)

    return _make


@pytest.fixture
def outdir(tmp_path) -> Path:
    return tmp_path / "out"


@pytest.fixture
def make_config(outdir):
    def _make(plutil: FakeTool, iconv: FakeTool, **kwargs) -> PipelineConfig:
        outdir.mkdir(exist_ok=True)
        return PipelineConfig(
            output_dir=outdir,
            tools=ToolPaths(plutil=str(plutil.path), iconv=str(iconv.path)),
            **kwargs,
        )

    return _make


@pytest.fixture
def write_source(tmp_path):
    src_dir = tmp_path / "src"
    src_dir.mkdir()

    def _write(name: str, data: bytes) -> Path:
        path = src_dir / name
        path.write_bytes(data)
        return path

    return _write
