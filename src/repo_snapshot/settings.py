from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from repo_snapshot.config import DEFAULT_MATCH, DEFAULT_STYLE, AuthMethod, MatchFilterSpec, RenderMode
from repo_snapshot.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

ENV_FILE = find_dotenv(usecwd=True)


class Settings(BaseModel):
    """Configuration settings for one snapshot run."""

    model_config = ConfigDict(extra="forbid")

    target: str = Field(..., description="Repository URL or local directory.")
    match: list[str] = Field(default_factory=lambda: [DEFAULT_MATCH], description="Include glob(s).")
    ignore: list[str] = Field(default_factory=list, description="Exclude globs.")
    content: list[str] = Field(
        default_factory=list,
        description="Keep files mentioning any of these (* and ** match any text).",
    )
    content_regex: list[str] = Field(
        default_factory=list,
        description="Keep files matching any of these regular expressions.",
    )
    filename: str = Field(default="", description="Output base name (default: repository name).")
    output_dir: Path = Field(default=Path("output"), description="Directory for the artifacts.")
    mode: RenderMode = Field(default=RenderMode.DOCUMENT, description="records or document.")
    style: str = Field(default=DEFAULT_STYLE, description="Pygments style for document mode.")
    dot: bool = Field(default=False, description="Include dot-files and dot-directories.")
    auth_method: AuthMethod = Field(default=AuthMethod.SSH, description="Clone credentials: ssh or https.")
    debug: bool = Field(default=False, description="Log per-file diagnostics.")
    log_file: str = Field(default="", description="Log file path.")

    @field_validator("match", "ignore", "content", "content_regex", mode="before")
    @classmethod
    def _one_or_many(cls, value: Any) -> Any:  # noqa: ANN401
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("match")
    @classmethod
    def _default_match(cls, value: list[str]) -> list[str]:
        return value or [DEFAULT_MATCH]

    def to_match_filter_spec(self) -> MatchFilterSpec:
        """Build the selection rules of the run.

        Raises:
            ConfigurationError: if a content regex does not compile

        Returns:
            MatchFilterSpec: include/exclude globs and content predicates, strings first
        """
        predicates: list[str | re.Pattern[str]] = list(self.content)
        for expression in self.content_regex:
            try:
                predicates.append(re.compile(expression))
            except re.error as e:
                raise ConfigurationError(message=f"Invalid content regex {expression!r}: {e}") from e
        return MatchFilterSpec(
            include_patterns=tuple(self.match),
            exclude_patterns=tuple(self.ignore),
            content_predicates=tuple(predicates),
        )

    def output_filename(self, repo_name: str) -> str:
        return self.filename or repo_name


def load_env(env_file: str = ENV_FILE) -> bool:
    """Load credentials from the nearest ``.env`` file without overriding the environment."""
    if not env_file:
        return False
    return load_dotenv(env_file, override=False)


def load_config_file(path: Path) -> dict[str, Any]:
    """Read run options from a YAML file.

    Keys use the option names of Settings (e.g. ``match``, ``ignore``, ``content``).

    Args:
        path (Path): the YAML file

    Raises:
        ConfigurationError: if the file cannot be read or does not hold a mapping

    Returns:
        dict[str, Any]: the options found in the file
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(message=f"Could not read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(message=f"Config file {path} must contain a mapping.")
    return {str(k).replace("-", "_"): v for k, v in data.items()}


def build_settings(overrides: Mapping[str, Any], config_file: Path | None = None) -> Settings:
    """Merge defaults, an optional YAML config file and explicit overrides.

    Overrides whose value is None are ignored so unset CLI flags do not mask the file.

    Raises:
        ConfigurationError: if the merged options are invalid
    """
    values: dict[str, Any] = load_config_file(config_file) if config_file else {}
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(message=f"Invalid configuration: {e}") from e
