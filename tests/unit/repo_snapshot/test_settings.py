import os
import re
from pathlib import Path

import pytest

from repo_snapshot.config import AuthMethod, RenderMode
from repo_snapshot.exceptions import ConfigurationError
from repo_snapshot.settings import Settings, build_settings, load_config_file, load_env


@pytest.mark.unit
def test_settings_defaults() -> None:
    settings = Settings(target="https://github.com/expressjs/express.git")
    assert settings.match == ["**/*.*"]
    assert settings.ignore == []
    assert settings.content == []
    assert settings.mode is RenderMode.DOCUMENT
    assert settings.auth_method is AuthMethod.SSH
    assert settings.output_dir == Path("output")
    assert settings.debug is False
    assert settings.output_filename("express") == "express"


@pytest.mark.unit
def test_settings_accepts_single_pattern_strings() -> None:
    settings = Settings(target=".", match="**/lib/**.js", ignore="node_modules/**", content="app.disabled")
    assert settings.match == ["**/lib/**.js"]
    assert settings.ignore == ["node_modules/**"]
    assert settings.content == ["app.disabled"]


@pytest.mark.unit
def test_empty_match_falls_back_to_default() -> None:
    assert Settings(target=".", match=[]).match == ["**/*.*"]


@pytest.mark.unit
def test_to_match_filter_spec_orders_strings_before_regexes() -> None:
    settings = Settings(target=".", content=["app.disabled"], content_regex=[r"^use strict"], filename="snap")
    spec = settings.to_match_filter_spec()
    assert spec.include_patterns == ("**/*.*",)
    assert spec.content_predicates[0] == "app.disabled"
    assert isinstance(spec.content_predicates[1], re.Pattern)
    assert settings.output_filename("express") == "snap"


@pytest.mark.unit
def test_invalid_content_regex_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="Invalid content regex"):
        Settings(target=".", content_regex=["(unclosed"]).to_match_filter_spec()


@pytest.mark.unit
def test_load_config_file_reads_yaml_mapping(tmp_path: Path) -> None:
    config = tmp_path / "snapshot.yaml"
    config.write_text(
        "match: '**/lib/**.js'\nignore:\n  - node_modules/**\noutput-dir: out\nmode: records\n",
        encoding="utf-8",
    )
    assert load_config_file(config) == {
        "match": "**/lib/**.js",
        "ignore": ["node_modules/**"],
        "output_dir": "out",
        "mode": "records",
    }


@pytest.mark.unit
def test_load_config_file_rejects_non_mapping(tmp_path: Path) -> None:
    config = tmp_path / "snapshot.yaml"
    config.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="must contain a mapping"):
        load_config_file(config)


@pytest.mark.unit
def test_build_settings_overrides_take_precedence(tmp_path: Path) -> None:
    config = tmp_path / "snapshot.yaml"
    config.write_text("target: ./repo\nmode: records\ndebug: true\nfilename: from-file\n", encoding="utf-8")
    settings = build_settings({"filename": "from-cli", "debug": None}, config_file=config)
    assert settings.target == "./repo"
    assert settings.mode is RenderMode.RECORDS
    assert settings.debug is True
    assert settings.filename == "from-cli"


@pytest.mark.unit
def test_build_settings_rejects_unknown_options() -> None:
    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        build_settings({"target": ".", "colour": "blue"})


@pytest.mark.unit
def test_load_env_reads_dotenv_without_overriding(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("GITHUB_USERNAME=from-file\nGITHUB_TOKEN=abc\n", encoding="utf-8")
    monkeypatch.setenv("GITHUB_USERNAME", "from-env")
    monkeypatch.setenv("GITHUB_TOKEN", "placeholder")
    monkeypatch.delenv("GITHUB_TOKEN")
    assert load_env(str(env_file)) is True
    assert os.environ["GITHUB_USERNAME"] == "from-env"
    assert os.environ["GITHUB_TOKEN"] == "abc"
