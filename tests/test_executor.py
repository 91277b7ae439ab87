import logging
import os
import stat
from pathlib import Path

import pytest

from conftest import snapshot
from sitebuild.config import BuildConfig
from sitebuild.pipeline import BuildError, BuildErrorKind, execute_build, plan_build, process_pages
from sitebuild.render import PageContext, ProcessorRegistry


def test_build_mirrors_pages_and_removes_stale_output(project: Path) -> None:
    config = BuildConfig(root=project)

    report = execute_build(config)

    output = project / "output"
    assert (output / "a" / "b.txt").read_text(encoding="utf-8") == "hi"
    assert (output / "index.html").exists()
    assert (output / "assets" / "img" / "logo.png").read_bytes() == b"\x89PNG\r\n\x1a\n\x00\xff"
    assert not (output / "stale.html").exists()
    assert report.pages_found is True
    assert report.entries_removed == 1
    assert len(report.pages) == 3
    assert report.handler_counts() == {"copy": 3}
    assert report.finished_at is not None


def test_build_is_idempotent(project: Path) -> None:
    config = BuildConfig(root=project)

    execute_build(config)
    first = snapshot(project / "output")
    execute_build(config)
    second = snapshot(project / "output")

    assert first == second
    assert set(first) == {"a/b.txt", "index.html", "assets/img/logo.png"}


def test_missing_pages_leaves_output_empty(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    output = tmp_path / "output"
    (output / "old").mkdir(parents=True)
    (output / "old" / "page.html").write_text("x", encoding="utf-8")

    caplog.set_level(logging.INFO)
    report = execute_build(BuildConfig(root=tmp_path))

    assert output.is_dir()
    assert list(output.iterdir()) == []
    assert report.pages_found is False
    assert report.pages == []
    assert "nothing to do" in caplog.text


def test_build_creates_missing_output_directory(project: Path) -> None:
    config = BuildConfig(root=project, output_dir=Path("public/site"))

    execute_build(config)

    assert (project / "public" / "site" / "a" / "b.txt").exists()


def test_blade_and_html_are_copied_verbatim(tmp_path: Path) -> None:
    pages = tmp_path / "input" / "pages"
    pages.mkdir(parents=True)
    (pages / "x.html").write_text("<p>{{ $title }}</p>", encoding="utf-8")
    (pages / "x.blade.php").write_text("@section('body')", encoding="utf-8")

    execute_build(BuildConfig(root=tmp_path))

    output = tmp_path / "output"
    assert (output / "x.html").read_text(encoding="utf-8") == "<p>{{ $title }}</p>"
    assert (output / "x.blade.php").read_text(encoding="utf-8") == "@section('body')"


def test_pages_root_name_repeated_in_path_is_preserved(tmp_path: Path) -> None:
    pages = tmp_path / "input" / "pages"
    nested = pages / "docs" / "input" / "pages"
    nested.mkdir(parents=True)
    (nested / "deep.html").write_text("deep", encoding="utf-8")

    execute_build(BuildConfig(root=tmp_path))

    assert (tmp_path / "output" / "docs" / "input" / "pages" / "deep.html").read_text(encoding="utf-8") == "deep"


def test_hidden_output_files_survive_build(project: Path) -> None:
    (project / "output" / ".gitkeep").write_text("", encoding="utf-8")

    execute_build(BuildConfig(root=project))

    assert (project / "output" / ".gitkeep").exists()


def test_created_directories_use_configured_mode(project: Path) -> None:
    previous = os.umask(0o002)
    try:
        execute_build(BuildConfig(root=project, directory_mode=0o775))
    finally:
        os.umask(previous)

    assert stat.S_IMODE((project / "output" / "assets" / "img").stat().st_mode) == 0o775


def test_process_pages_with_custom_registry(project: Path) -> None:
    registry = ProcessorRegistry()

    @registry.register("txt")
    def annotate(data: bytes, context: PageContext) -> bytes:
        return data + f" ({context.relative_path.as_posix()})".encode("utf-8")

    output = project / "fresh"
    found, pages = process_pages(project / "input", output, registry=registry)

    assert found is True
    assert (output / "a" / "b.txt").read_text(encoding="utf-8") == "hi (a/b.txt)"
    handlers = {page.target.relative_to(output).as_posix(): page.handler for page in pages}
    assert handlers == {"a/b.txt": "annotate", "index.html": "copy", "assets/img/logo.png": "copy"}


def test_failure_keeps_pages_written_before_it(project: Path) -> None:
    registry = ProcessorRegistry()
    written = []
    failed = []

    def pass_through_until_third(data: bytes, context: PageContext) -> bytes:
        if len(written) == 2:
            failed.append(context)
            raise PermissionError(13, "Permission denied", str(context.target))
        written.append(context.target)
        return data

    for extension in ("txt", "html", "png"):
        registry.register(extension, pass_through_until_third)

    with pytest.raises(BuildError) as exc:
        execute_build(BuildConfig(root=project), registry=registry)

    assert exc.value.kind is BuildErrorKind.PROCESS
    assert isinstance(exc.value.__cause__, PermissionError)
    assert len(written) == 2
    for target in written:
        assert target.is_file(), f"{target} should survive the failed build"
    assert exc.value.path == failed[0].source
    assert not failed[0].target.exists()
    assert not (project / "output" / "stale.html").exists()


def test_clean_permission_error_aborts_build(project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (project / "output" / "later.html").write_text("later", encoding="utf-8")

    def denied(path, *args, **kwargs):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr("sitebuild.util.filesystem.os.unlink", denied)

    with pytest.raises(BuildError) as exc:
        execute_build(BuildConfig(root=project))

    monkeypatch.undo()
    assert exc.value.kind is BuildErrorKind.CLEAN
    assert isinstance(exc.value.__cause__, PermissionError)
    assert exc.value.path is not None and exc.value.path.parent == project.resolve() / "output"
    assert (project / "output" / "stale.html").exists()
    assert (project / "output" / "later.html").exists()
    assert not (project / "output" / "index.html").exists()


@pytest.mark.skipif(os.geteuid() == 0, reason="root ignores directory permissions")
def test_clean_failure_is_reported_as_clean_error(project: Path) -> None:
    locked = project / "output" / "locked"
    locked.mkdir()
    (locked / "file.txt").write_text("x", encoding="utf-8")
    locked.chmod(stat.S_IRUSR | stat.S_IXUSR)
    try:
        with pytest.raises(BuildError) as exc:
            execute_build(BuildConfig(root=project))
    finally:
        locked.chmod(stat.S_IRWXU)

    assert exc.value.kind is BuildErrorKind.CLEAN
    assert "clean" in str(exc.value)


def test_plan_build_is_sorted_and_read_only(project: Path) -> None:
    config = BuildConfig(root=project)

    pairs = plan_build(config)

    assert [source for source, _ in pairs] == sorted(source for source, _ in pairs)
    assert (config.output_root / "a" / "b.txt") in [target for _, target in pairs]
    assert (project / "output" / "stale.html").exists()
    assert not (project / "output" / "a").exists()
