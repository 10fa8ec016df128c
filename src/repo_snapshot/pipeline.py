from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum, auto
from typing import TYPE_CHECKING

from repo_snapshot.config import DEFAULT_STYLE, FileRecord, MatchFilterSpec, RenderMode
from repo_snapshot.exceptions import AssemblyContractError
from repo_snapshot.file_manipulation import ContentFilter, PathMatcher, ReadFailure, classify, read_text_file
from repo_snapshot.logging import logger
from repo_snapshot.output_construction import DocumentAssembler, RecordListAssembler
from repo_snapshot.rendering import AnnotatedRenderer, PlainRenderer

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Sequence
    from pathlib import Path

    from repo_snapshot.config import PipelineResult
    from repo_snapshot.output_construction import OutputAssembler
    from repo_snapshot.rendering import Renderer

    TextReader = Callable[[Path], str | ReadFailure]


class SkipReason(StrEnum):
    """Why a candidate path did not produce a record."""

    PATH = auto()
    UNREADABLE = auto()
    CONTENT = auto()


@dataclass(frozen=True)
class Included:
    """A candidate that produced a record."""

    record: FileRecord


@dataclass(frozen=True)
class Skipped:
    """A candidate that was dropped, and why."""

    path: str
    reason: SkipReason
    detail: str = ""


FileOutcome = Included | Skipped


class PipelineRunner:
    """Select, read, filter, classify and render candidate files one at a time.

    Files are handled in enumeration order and the result keeps that order.
    A file that cannot be read is skipped without stopping the run; with
    `debug` enabled every skip and every processed file is logged.
    """

    def __init__(
        self,
        spec: MatchFilterSpec,
        renderer: Renderer,
        *,
        debug: bool = False,
        reader: TextReader = read_text_file,
    ) -> None:
        self.spec = spec
        self.renderer = renderer
        self.debug = debug
        self.path_matcher = PathMatcher(spec.include_patterns, spec.exclude_patterns)
        self.content_filter = ContentFilter(spec.content_predicates)
        self._reader = reader

    def process(self, path: str, root: Path) -> FileOutcome:
        """Run one candidate path through every stage.

        Args:
            path (str): the candidate path, relative to `root`
            root (Path): the repository root

        Returns:
            FileOutcome: Included with the new record, or Skipped with the stage that dropped it
        """
        if not self.path_matcher.matches(path):
            return Skipped(path=path, reason=SkipReason.PATH)
        if self.debug:
            logger.info("Processing file", path=path)

        content = self._reader(root / path)
        if isinstance(content, ReadFailure):
            return Skipped(path=path, reason=SkipReason.UNREADABLE, detail=content.reason)
        if not self.content_filter.accepts(content):
            return Skipped(path=path, reason=SkipReason.CONTENT)

        type_tag = classify(path)
        rendered = self.renderer.render(content, type_tag)
        record = FileRecord(path=path, type_tag=type_tag, raw_content=content, rendered=rendered)
        if self.debug:
            logger.info("Included file", path=path, type_tag=type_tag, mime_type=record.mime_type)
        return Included(record)

    def outcomes(self, candidates: Iterable[str], root: Path) -> Iterator[FileOutcome]:
        for path in candidates:
            outcome = self.process(path, root)
            if self.debug and isinstance(outcome, Skipped) and outcome.reason is SkipReason.UNREADABLE:
                logger.warning("Skipping unreadable file", path=outcome.path, reason=outcome.detail)
            yield outcome

    def run(self, candidates: Iterable[str], root: Path) -> list[FileRecord]:
        """Return the records of every retained candidate, in enumeration order."""
        return [o.record for o in self.outcomes(candidates, root) if isinstance(o, Included)]


def build_renderer(mode: RenderMode, style: str = DEFAULT_STYLE) -> Renderer:
    if mode is RenderMode.DOCUMENT:
        return AnnotatedRenderer(style=style)
    return PlainRenderer()


def build_assembler(mode: RenderMode, renderer: Renderer) -> OutputAssembler:
    if mode is RenderMode.DOCUMENT:
        return DocumentAssembler(stylesheet=getattr(renderer, "stylesheet", None))
    return RecordListAssembler(keep_rendered=renderer.annotated)


class SnapshotPipeline:
    """A runner and an assembler chosen once for a whole run.

    Args:
        spec (MatchFilterSpec): selection rules for the run
        mode (RenderMode): records for a JSON record list, document for HTML + index
        renderer (Renderer | None): overrides the renderer implied by `mode`
        style (str): Pygments style for annotated rendering
        debug (bool): log per-file diagnostics

    Raises:
        AssemblyContractError: if document mode is paired with a renderer that does not annotate
    """

    def __init__(
        self,
        spec: MatchFilterSpec,
        mode: RenderMode = RenderMode.DOCUMENT,
        *,
        renderer: Renderer | None = None,
        style: str = DEFAULT_STYLE,
        debug: bool = False,
    ) -> None:
        renderer = renderer if renderer is not None else build_renderer(mode, style)
        assembler = build_assembler(mode, renderer)
        if assembler.requires_annotation and not renderer.annotated:
            raise AssemblyContractError
        self.mode = mode
        self.runner = PipelineRunner(spec, renderer, debug=debug)
        self.assembler = assembler

    def run(self, candidates: Sequence[str], root: Path) -> PipelineResult:
        records = self.runner.run(candidates, root)
        logger.info("Pipeline finished", candidates=len(candidates), matched=len(records), mode=str(self.mode))
        return self.assembler.assemble(records, candidates)
