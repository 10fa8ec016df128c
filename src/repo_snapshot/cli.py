"""repo_snapshot command line.

Snapshot a repository (URL or local directory) into either:

1) **document** mode (default): ``<filename>.html``, one page with every
   selected file syntax-highlighted, plus ``<filename>.json`` listing the
   included paths;
2) **records** mode: ``<filename>.json``, an array of
   ``{"path", "extension", "content"}`` objects.

Examples:
    repo-snapshot https://github.com/expressjs/express.git --match "**/lib/**.js" --content app.disabled
    repo-snapshot . --mode records --ignore "tests/**" --output-dir out
    repo-snapshot https://github.com/org/private.git --auth https --config snapshot.yaml
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import TYPE_CHECKING

from repo_snapshot import __version__
from repo_snapshot.config import AuthMethod, DocumentResult, RenderMode
from repo_snapshot.exceptions import SnapshotError
from repo_snapshot.logging import logger, setup_logging
from repo_snapshot.output_construction import write_artifacts
from repo_snapshot.pipeline import SnapshotPipeline
from repo_snapshot.repository import open_repository
from repo_snapshot.settings import Settings, build_settings, load_env

if TYPE_CHECKING:
    from collections.abc import Sequence

    from repo_snapshot.config import PipelineResult


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="repo-snapshot",
        description="Export a repository as JSON records or a highlighted HTML document.",
    )
    p.add_argument("target", nargs="?", default=None, help="Repository URL or local directory.")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--config", type=Path, default=None, help="YAML file with run options.")
    p.add_argument(
        "--match",
        action="append",
        default=None,
        help="Include glob (repeatable, default **/*.*).",
    )
    p.add_argument("--ignore", action="append", default=None, help="Exclude glob (repeatable).")
    p.add_argument(
        "--content",
        action="append",
        default=None,
        help="Keep files mentioning this text; * and ** match anything (repeatable).",
    )
    p.add_argument(
        "--content-regex",
        action="append",
        default=None,
        help="Keep files matching this regular expression (repeatable).",
    )
    p.add_argument("--filename", type=str, default=None, help="Output base name.")
    p.add_argument("--output-dir", type=Path, default=None, help="Directory for the artifacts.")
    p.add_argument(
        "--mode",
        choices=[m.value for m in RenderMode],
        default=None,
        help="records: JSON array of files; document: HTML page + JSON index.",
    )
    p.add_argument("--style", type=str, default=None, help="Pygments style for document mode.")
    p.add_argument("--dot", action="store_true", default=None, help="Include dot-files.")
    p.add_argument(
        "--auth",
        dest="auth_method",
        choices=[m.value for m in AuthMethod],
        default=None,
        help="Clone credentials: ssh (default) or https with GITHUB_USERNAME/GITHUB_TOKEN.",
    )
    p.add_argument("--log-file", type=str, default=None, help="Log file path.")
    p.add_argument("--debug", action="store_true", default=None, help="Log per-file diagnostics.")
    return p


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse command line arguments into Settings.

    Raises:
        ConfigurationError: if the options (after merging the config file) are invalid
    """
    args = vars(build_parser().parse_args(argv))
    config_file = args.pop("config")
    return build_settings(args, config_file=config_file)


def run_snapshot(settings: Settings) -> tuple[PipelineResult, list[Path]]:
    """Acquire the repository, run the pipeline and write the artifacts.

    The pipeline is built before the repository is fetched, so configuration
    errors surface without any network or disk work. Artifacts are written
    only once the whole result exists.

    Raises:
        SnapshotError: on configuration or acquisition failure
    """
    spec = settings.to_match_filter_spec()
    pipeline = SnapshotPipeline(spec, settings.mode, style=settings.style, debug=settings.debug)
    with open_repository(settings.target, auth_method=settings.auth_method) as source:
        candidates = source.enumerate(spec.include_patterns, spec.exclude_patterns, dot=settings.dot)
        logger.info("Enumerated candidates", repo=source.name, candidates=len(candidates))
        result = pipeline.run(candidates, source.root)
        filename = settings.output_filename(source.name)
    written = write_artifacts(result, settings.output_dir, filename)
    return result, written


def main(argv: Sequence[str] | None = None) -> int:
    try:
        settings = parse_args(argv)
    except SnapshotError as e:
        logger.error("Invalid configuration", error=str(e))
        return 1
    if settings.log_file:
        setup_logging(settings.log_file)
    load_env()

    try:
        result, written = run_snapshot(settings)
    except SnapshotError as e:
        logger.error("Snapshot failed", target=settings.target, error=str(e))
        return 1

    count = len(result.included_paths) if isinstance(result, DocumentResult) else len(result.records)
    print(f"Wrote {', '.join(str(p) for p in written)} mode={settings.mode} files={count}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
