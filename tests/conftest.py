from pathlib import Path

import pytest
from typer.testing import CliRunner


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def _clear_sitebuild_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("SITEBUILD_INPUT_DIR", "SITEBUILD_OUTPUT_DIR", "SITEBUILD_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """
    Create a project root with an `input/pages` tree and a stale `output/`.
    """
    pages = tmp_path / "input" / "pages"
    (pages / "a").mkdir(parents=True)
    (pages / "a" / "b.txt").write_text("hi", encoding="utf-8")
    (pages / "index.html").write_text("<h1>Home</h1>\n", encoding="utf-8")
    (pages / "assets" / "img").mkdir(parents=True)
    (pages / "assets" / "img" / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\xff")
    (tmp_path / "input" / "content").mkdir()
    (tmp_path / "input" / "content" / "home.json").write_text('{"title": "Home"}', encoding="utf-8")

    output = tmp_path / "output"
    output.mkdir()
    (output / "stale.html").write_text("old", encoding="utf-8")
    return tmp_path


def snapshot(root: Path) -> dict:
    """Map every file below root (relative path) to its bytes."""
    return {str(path.relative_to(root)): path.read_bytes() for path in sorted(root.rglob("*")) if path.is_file()}
