from pathlib import Path
import re

import fastmirror.cli as cli
from fastmirror.cli import (
    EXIT_MISSING_TARGET,
    EXIT_RUNTIME_ERROR,
    EXIT_SOURCE_NOT_FOUND,
    EXIT_SUCCESS,
    main,
)


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_without_target_returns_missing_target(capsys) -> None:
    exit_code = main([])

    err = capsys.readouterr().err
    assert exit_code == EXIT_MISSING_TARGET
    assert "Please define at least a target directory!" in err


def test_too_many_paths_is_a_usage_error(tmp_path: Path) -> None:
    exit_code = main([str(tmp_path / "a"), str(tmp_path / "b"), str(tmp_path / "c")])

    assert exit_code == EXIT_MISSING_TARGET


def test_missing_source_returns_source_not_found(tmp_path: Path, capsys) -> None:
    exit_code = main([str(tmp_path / "missing"), str(tmp_path / "dest")])

    err = capsys.readouterr().err
    assert exit_code == EXIT_SOURCE_NOT_FOUND
    assert "not found" in err
    assert not (tmp_path / "dest").exists()


def test_mirror_prints_summary_and_timestamped_log(tmp_path: Path, capsys) -> None:
    source = tmp_path / "src"
    destination = tmp_path / "dest"
    _write(source / "a.txt", "hello")
    _write(destination / "stale.txt", "old")

    exit_code = main([str(source), str(destination)])

    output = capsys.readouterr().out
    assert exit_code == EXIT_SUCCESS
    assert (destination / "a.txt").exists()
    assert "SUMMARY:" in output
    assert "Handled directories: 1" in output
    assert "Copied files: 1 (5)" in output
    assert "Extra files: 1 (3)" in output
    assert "Failed extra files: 0 (0)" in output
    assert re.search(
        r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{3}\] \[INFO\]: Starting copy process",
        output,
        flags=re.MULTILINE,
    )


def test_single_argument_mirrors_current_directory(tmp_path: Path, monkeypatch, capsys) -> None:
    source = tmp_path / "src"
    destination = tmp_path / "dest"
    _write(source / "here.txt", "cwd")
    monkeypatch.chdir(source)

    exit_code = main([str(destination)])

    capsys.readouterr()
    assert exit_code == EXIT_SUCCESS
    assert (destination / "here.txt").read_text(encoding="utf-8") == "cwd"


def test_dry_run_and_exclude_options(tmp_path: Path, capsys) -> None:
    source = tmp_path / "src"
    destination = tmp_path / "dest"
    _write(source / "a.txt", "a")
    _write(source / "skip.log", "log")

    exit_code = main([str(source), str(destination), "--exclude", "*.log"])
    assert exit_code == EXIT_SUCCESS
    assert not (destination / "skip.log").exists()
    capsys.readouterr()

    _write(source / "b.txt", "b")
    exit_code = main([str(source), str(destination), "--dry-run", "--exclude", "*.log"])

    output = capsys.readouterr().out
    assert exit_code == EXIT_SUCCESS
    assert "Copied files: 1 (1)" in output
    assert not (destination / "b.txt").exists()


def test_unhandled_exception_returns_runtime_error(tmp_path: Path, monkeypatch, capsys) -> None:
    source = tmp_path / "src"
    source.mkdir()

    def _explode(*args, **kwargs):
        raise PermissionError("cannot read root")

    monkeypatch.setattr(cli, "mirror", _explode)

    exit_code = main([str(source), str(tmp_path / "dest")])

    output = capsys.readouterr().out
    assert exit_code == EXIT_RUNTIME_ERROR
    assert "[ERROR]: Uncaught exception: cannot read root" in output
    assert "Traceback (most recent call last)" in output
    assert "PermissionError: cannot read root" in output
    assert "SUMMARY:" not in output


def test_log_file_receives_log_lines(tmp_path: Path, capsys) -> None:
    source = tmp_path / "src"
    _write(source / "a.txt", "a")
    log_file = tmp_path / "logs" / "fastmirror.log"

    exit_code = main([str(source), str(tmp_path / "dest"), "--log-file", str(log_file)])

    capsys.readouterr()
    assert exit_code == EXIT_SUCCESS
    assert "Copying file to" in log_file.read_text(encoding="utf-8")


def test_config_mode_runs_jobs(tmp_path: Path, capsys) -> None:
    source = tmp_path / "src"
    target = tmp_path / "out"
    _write(source / "a.txt", "abc")

    config_file = tmp_path / "cfg.yaml"
    config_file.write_text(
        f"""
jobs:
  - name: j
    source: '{source.as_posix()}'
    target: '{target.as_posix()}'
""".strip(),
        encoding="utf-8",
    )

    exit_code = main(["--config", str(config_file)])

    output = capsys.readouterr().out
    assert exit_code == EXIT_SUCCESS
    assert "Jobs: 1 completed, 0 failed" in output
    assert "Copied files: 1 (3)" in output
    assert (target / "a.txt").exists()


def test_config_mode_rejects_positional_paths(tmp_path: Path, capsys) -> None:
    exit_code = main(["--config", str(tmp_path / "cfg.yaml"), str(tmp_path / "dest")])

    err = capsys.readouterr().err
    assert exit_code == EXIT_MISSING_TARGET
    assert "--config cannot be combined" in err
