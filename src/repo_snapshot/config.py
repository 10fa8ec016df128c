from __future__ import annotations

import mimetypes
import re
from enum import StrEnum, auto
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field


class RenderMode(StrEnum):
    """Which artifact a snapshot run produces."""

    RECORDS = auto()
    DOCUMENT = auto()


class AuthMethod(StrEnum):
    """How credentials are supplied when cloning a remote repository."""

    SSH = auto()
    HTTPS = auto()


DEFAULT_MATCH = "**/*.*"

DEFAULT_STYLE = "default"

# Lexer used when a type tag has no Pygments lexer of its own.
FALLBACK_LEXER = "javascript"

ALWAYS_PRUNED_DIRS = frozenset({".git"})


class PlainContent(BaseModel):
    """File text passed through untouched."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["plain"] = "plain"
    text: str


class AnnotatedContent(BaseModel):
    """Highlighted HTML markup for one file.

    Attributes:
        markup: HTML with one ``<span class="...">`` per styled token.
        type_tag: The type tag the lexer was selected from.
        lexer: Name of the Pygments lexer that produced the markup.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["annotated"] = "annotated"
    markup: str
    type_tag: str
    lexer: str


RenderedContent = Annotated[PlainContent | AnnotatedContent, Field(discriminator="kind")]


class FileRecord(BaseModel):
    """One file retained by a pipeline run.

    Attributes:
        path: Path relative to the repository root, POSIX separators.
        type_tag: Suffix after the last dot of the file name (may be empty).
        raw_content: The file text as read from disk.
        rendered: Renderer output, or None when it was stripped for a raw export.
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="File path relative to repository root")
    type_tag: str = Field("", description="Extension-derived type tag")
    raw_content: str = Field(..., description="Decoded file text")
    rendered: RenderedContent | None = Field(default=None, description="Rendered form of the content")

    @computed_field
    @property
    def mime_type(self) -> str:
        """Guess a MIME type from the file name."""
        guessed, _ = mimetypes.guess_type(self.path, strict=False)
        return guessed or ""

    def to_export(self) -> dict[str, str]:
        """Return the ``{path, extension, content}`` form written to the JSON export."""
        return {"path": self.path, "extension": self.type_tag, "content": self.raw_content}


class MatchFilterSpec(BaseModel):
    """Selection rules supplied once per pipeline run."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    include_patterns: tuple[str, ...] = Field(default=(DEFAULT_MATCH,), description="Include globs")
    exclude_patterns: tuple[str, ...] = Field(default=(), description="Exclude globs")
    content_predicates: tuple[str | re.Pattern[str], ...] = Field(
        default=(),
        description="Literal-with-wildcard strings or compiled patterns; any match keeps the file",
    )


class RecordListResult(BaseModel):
    """Result of a run in record mode."""

    model_config = ConfigDict(frozen=True)

    records: tuple[FileRecord, ...] = ()

    def to_export(self) -> list[dict[str, str]]:
        return [rec.to_export() for rec in self.records]


class DocumentResult(BaseModel):
    """Result of a run in document mode."""

    model_config = ConfigDict(frozen=True)

    document: str
    included_paths: tuple[str, ...] = ()


PipelineResult = RecordListResult | DocumentResult
