from __future__ import annotations

import html
import io
import json
from typing import TYPE_CHECKING, Protocol

from repo_snapshot.config import AnnotatedContent, DocumentResult, RecordListResult
from repo_snapshot.exceptions import AssemblyContractError
from repo_snapshot.logging import logger
from repo_snapshot.rendering import document_style

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from repo_snapshot.config import FileRecord, PipelineResult


class OutputAssembler(Protocol):
    """Fold the records of one run into the final artifact."""

    requires_annotation: bool

    def assemble(self, records: Sequence[FileRecord], candidates: Sequence[str]) -> PipelineResult: ...


class RecordListAssembler:
    """Return the records in enumeration order.

    Unless `keep_rendered` is set, the rendered form is dropped so callers get
    path, type tag and raw content only.
    """

    requires_annotation = False

    def __init__(self, *, keep_rendered: bool = False) -> None:
        self.keep_rendered = keep_rendered

    def assemble(self, records: Sequence[FileRecord], candidates: Sequence[str]) -> RecordListResult:  # noqa: ARG002
        if self.keep_rendered:
            return RecordListResult(records=tuple(records))
        return RecordListResult(records=tuple(rec.model_copy(update={"rendered": None}) for rec in records))


def build_document(
    records: Sequence[FileRecord],
    candidates: Sequence[str],
    *,
    stylesheet: str,
) -> str:
    """Build the HTML document of a snapshot.

    The document holds the style block, a collapsible manifest listing every
    candidate path that was considered (retained or not), then one section per
    record with its path as heading and its highlighted markup.

    Args:
        records (Sequence[FileRecord]): retained records, rendered with annotations
        candidates (Sequence[str]): every candidate path, in enumeration order
        stylesheet (str): CSS placed in the document head

    Raises:
        AssemblyContractError: if a record was not rendered with annotations

    Returns:
        str: the complete HTML document
    """
    out = io.StringIO()
    out.write(f"<html><head><meta charset=\"utf-8\"><style>{stylesheet}</style></head><body>")
    out.write("<details><summary>All Files</summary>")
    out.write("\n".join(f"<p>{html.escape(path)}</p>" for path in candidates))
    out.write("</details>")

    for rec in records:
        if not isinstance(rec.rendered, AnnotatedContent):
            raise AssemblyContractError(message=f"{rec.path} was not rendered with annotations.")
        tag = html.escape(rec.type_tag, quote=True)
        out.write(f"<h2>{html.escape(rec.path)}</h2>")
        out.write(f'<pre><code class="language-{tag}">{rec.rendered.markup}</code></pre>')

    out.write("</body></html>")
    return out.getvalue()


class DocumentAssembler:
    """Combine annotated records into one HTML document plus the list of included paths."""

    requires_annotation = True

    def __init__(self, stylesheet: str | None = None) -> None:
        self.stylesheet = stylesheet if stylesheet is not None else document_style()

    def assemble(self, records: Sequence[FileRecord], candidates: Sequence[str]) -> DocumentResult:
        document = build_document(records, candidates, stylesheet=self.stylesheet)
        return DocumentResult(document=document, included_paths=tuple(rec.path for rec in records))


def write_artifacts(result: PipelineResult, output_dir: Path, filename: str) -> list[Path]:
    """Write the artifact files of a finished run.

    Record mode writes ``<filename>.json`` with one ``{path, extension, content}``
    object per file. Document mode writes ``<filename>.html`` and
    ``<filename>.json`` holding the included paths.

    Args:
        result (PipelineResult): the assembled result
        output_dir (Path): directory to write into (created if missing)
        filename (str): base name of the written files

    Returns:
        list[Path]: the written files
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / f"{filename}.json"
    written: list[Path] = []
    if isinstance(result, DocumentResult):
        html_path = output_dir / f"{filename}.html"
        html_path.write_text(result.document, encoding="utf-8")
        written.append(html_path)
        payload: list[str] | list[dict[str, str]] = list(result.included_paths)
    else:
        payload = result.to_export()
    json_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    written.append(json_path)
    logger.info("Wrote artifacts", files=[str(p) for p in written])
    return written
