from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from repo_snapshot import __version__, cli
from repo_snapshot.config import RenderMode
from repo_snapshot.exceptions import GitCommandError

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "express"
    (root / "lib").mkdir(parents=True)
    (root / "lib" / "app.js").write_text("app.disabled = function () {};\n", encoding="utf-8")
    (root / "lib" / "app.test.js").write_text("it('works', () => {});\n", encoding="utf-8")
    (root / "README.md").write_text("# express\n", encoding="utf-8")
    return root


@pytest.mark.unit
def test_parse_args_collects_repeatable_options() -> None:
    settings = cli.parse_args(
        [
            "./repo",
            "--match",
            "**/lib/**.js",
            "--ignore",
            "node_modules/**",
            "--ignore",
            "**/*.test.js",
            "--content",
            "app.disabled",
            "--mode",
            "records",
            "--debug",
        ],
    )
    assert settings.target == "./repo"
    assert settings.match == ["**/lib/**.js"]
    assert settings.ignore == ["node_modules/**", "**/*.test.js"]
    assert settings.content == ["app.disabled"]
    assert settings.mode is RenderMode.RECORDS
    assert settings.debug is True
    assert settings.dot is False


@pytest.mark.unit
def test_parse_args_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["--version"])
    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


@pytest.mark.unit
def test_parse_args_reads_config_file(tmp_path: Path) -> None:
    config = tmp_path / "snapshot.yaml"
    config.write_text("target: ./repo\ncontent:\n  - app.disabled\nmode: records\n", encoding="utf-8")
    settings = cli.parse_args(["--config", str(config), "--mode", "document"])
    assert settings.target == "./repo"
    assert settings.content == ["app.disabled"]
    assert settings.mode is RenderMode.DOCUMENT


@pytest.mark.unit
def test_main_record_mode_writes_json_records(repo: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    out_dir = tmp_path / "out"
    exit_code = cli.main(
        [str(repo), "--mode", "records", "--match", "**/lib/**.js", "--content", "app.disabled", "--output-dir", str(out_dir)],
    )
    assert exit_code == 0
    data = json.loads((out_dir / "express.json").read_text(encoding="utf-8"))
    assert data == [{"path": "lib/app.js", "extension": "js", "content": "app.disabled = function () {};\n"}]
    assert "files=1" in capsys.readouterr().out


@pytest.mark.unit
def test_main_document_mode_writes_html_and_index(repo: Path, tmp_path: Path) -> None:
    out_dir = tmp_path / "out"
    exit_code = cli.main([str(repo), "--filename", "snap", "--output-dir", str(out_dir)])
    assert exit_code == 0
    page = (out_dir / "snap.html").read_text(encoding="utf-8")
    index = json.loads((out_dir / "snap.json").read_text(encoding="utf-8"))
    assert index == ["README.md", "lib/app.js", "lib/app.test.js"]
    assert "<h2>lib/app.js</h2>" in page
    assert "<details><summary>All Files</summary>" in page


@pytest.mark.unit
def test_main_without_target_fails() -> None:
    assert cli.main([]) == 1


@pytest.mark.unit
def test_main_bad_style_fails_before_writing(repo: Path, tmp_path: Path, mocker: MockerFixture) -> None:
    opened = mocker.patch.object(cli, "open_repository")
    out_dir = tmp_path / "out"
    assert cli.main([str(repo), "--style", "no-such-style", "--output-dir", str(out_dir)]) == 1
    opened.assert_not_called()
    assert not out_dir.exists()


@pytest.mark.unit
def test_main_acquisition_failure_returns_error(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch.object(
        cli,
        "open_repository",
        side_effect=GitCommandError(target="https://example.com/x.git", message="git clone failed"),
    )
    out_dir = tmp_path / "out"
    assert cli.main(["https://example.com/x.git", "--output-dir", str(out_dir)]) == 1
    assert not out_dir.exists()
