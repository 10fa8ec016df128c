from __future__ import annotations

import fnmatch
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from repo_snapshot.config import DEFAULT_MATCH
from repo_snapshot.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path, PurePath

_GLOB_CHARS = frozenset("*?[")


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return str(path.relative_to(root)).replace("\\", "/")
    except ValueError:
        return str(path)


def normalize_globs(globs: Sequence[str]) -> list[str]:
    """Normalize a sequence of path glob patterns.

    Normalize a sequence of glob patterns by stripping whitespace and
    replacing backslashes with forward slashes. Empty patterns are dropped.

    Args:
        globs (Sequence[str]): the glob patterns to normalize

    Returns:
        list[str]: the normalized glob patterns
    """
    out: list[str] = []
    for g in globs:
        g2 = (g or "").strip()
        if not g2:
            continue
        out.append(g2.replace("\\", "/"))
    return out


def expand_globstar(pattern: str) -> list[str]:
    """Expand every ``**/`` segment of a glob into its "zero directories" alternative.

    ``fnmatch`` already lets ``*`` cross ``/``, so ``**/lib/*.js`` matches
    ``src/lib/a.js`` but not ``lib/a.js``. Dropping the ``**/`` segment
    covers the top-level case.

    Args:
        pattern (str): a normalized glob pattern

    Returns:
        list[str]: the pattern itself plus each variant with some ``**/`` segments removed
    """
    variants = {pattern}
    frontier = [pattern]
    while frontier:
        current = frontier.pop()
        idx = current.find("**/")
        while idx != -1:
            if idx == 0 or current[idx - 1] == "/":
                shorter = current[:idx] + current[idx + 3 :]
                if shorter not in variants:
                    variants.add(shorter)
                    frontier.append(shorter)
            idx = current.find("**/", idx + 1)
    return sorted(variants)


def compile_glob(pattern: str) -> list[re.Pattern[str]]:
    """Compile a glob and its globstar variants into case-sensitive regexes."""
    return [re.compile(fnmatch.translate(p)) for p in expand_globstar(pattern)]


def compile_name_glob(pattern: str) -> re.Pattern[str] | None:
    """Compile the last segment of a glob, to be matched against the file name alone.

    Returns None when that segment contains ``**``, which may span directories.

    >>> compile_name_glob("**/*.*").match("Makefile") is None
    True
    """
    name = pattern.rsplit("/", 1)[-1]
    if "**" in name:
        return None
    return re.compile(fnmatch.translate(name))


@dataclass(frozen=True)
class CompiledGlob:
    """One glob: whole-path regexes (globstar variants) plus an optional file-name regex.

    ``fnmatch`` lets ``*`` cross ``/``, so ``**/*.*`` alone would also select
    ``v1.2/Makefile``. Checking the last segment against the file name keeps
    ``*.*`` meaning "a file name with an extension".
    """

    pattern: str
    path_res: tuple[re.Pattern[str], ...]
    name_re: re.Pattern[str] | None

    @classmethod
    def compile(cls, pattern: str) -> CompiledGlob:
        return cls(pattern, tuple(compile_glob(pattern)), compile_name_glob(pattern))

    def matches(self, path: str) -> bool:
        name = path.rsplit("/", 1)[-1]
        if self.name_re is not None and not self.name_re.match(name):
            return False
        return any(rx.match(path) for rx in self.path_res)


def is_bare_name(pattern: str) -> bool:
    """Check if a pattern is a plain file or directory name (no wildcard, no separator)."""
    return "/" not in pattern and not (_GLOB_CHARS & set(pattern))


class PathMatcher:
    """Decide whether a repository-relative path is selected by include/exclude globs.

    A path is selected when it matches at least one include pattern and none
    of the exclude patterns. Without include patterns every path with an
    extension (``**/*.*``) is a candidate. An exclude that is a bare name such
    as ``node_modules`` also drops every path containing that segment.
    """

    def __init__(self, include: Sequence[str] = (), exclude: Sequence[str] = ()) -> None:
        self.include = normalize_globs(include) or [DEFAULT_MATCH]
        self.exclude = normalize_globs(exclude)
        self._include_globs = [CompiledGlob.compile(pat) for pat in self.include]
        self._exclude_globs = [CompiledGlob.compile(pat) for pat in self.exclude]
        self._excluded_names = frozenset(pat for pat in self.exclude if is_bare_name(pat))

    def matches(self, path: str) -> bool:
        if not any(g.matches(path) for g in self._include_globs):
            return False
        if any(g.matches(path) for g in self._exclude_globs):
            return False
        return not any(part in self._excluded_names for part in path.split("/"))

    def __repr__(self) -> str:
        return f"PathMatcher(include={self.include!r}, exclude={self.exclude!r})"


def compile_content_predicate(predicate: str | re.Pattern[str]) -> re.Pattern[str]:
    """Turn a content predicate into a compiled pattern.

    Compiled patterns are used as given. Strings are treated permissively:
    ``*`` and ``**`` both become "any text" (newlines included), the rest of
    the string is kept as a regular expression where ``.`` still stops at a
    newline. Matching ignores case.

    Args:
        predicate (str | re.Pattern[str]): the predicate to compile

    Raises:
        ConfigurationError: if the string does not form a valid pattern

    Returns:
        re.Pattern[str]: a pattern to ``search`` file content with
    """
    if isinstance(predicate, re.Pattern):
        return predicate
    expression = re.sub(r"\*+", "(?s:.*)", predicate)
    try:
        return re.compile(expression, re.IGNORECASE)
    except re.error as e:
        raise ConfigurationError(message=f"Invalid content filter {predicate!r}: {e}") from e


class ContentFilter:
    """Accept file content when any predicate occurs in it; accept everything when there are none."""

    def __init__(self, predicates: Sequence[str | re.Pattern[str]] = ()) -> None:
        self._patterns = [compile_content_predicate(p) for p in predicates]

    def __bool__(self) -> bool:
        return bool(self._patterns)

    def accepts(self, content: str) -> bool:
        if not self._patterns:
            return True
        return any(rx.search(content) for rx in self._patterns)


def classify(path: str | PurePath) -> str:
    """Return the type tag of a path: the suffix after the last dot of its file name.

    >>> classify("a.b.c")
    'c'
    >>> classify("README")
    ''
    """
    name = str(path).replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1]


@dataclass(frozen=True)
class ReadFailure:
    """Why a file could not be read as text."""

    path: Path
    reason: str


def read_text_file(path: Path, encoding: str = "utf-8") -> str | ReadFailure:
    """Read a whole file as text.

    Args:
        path (Path): the file to read
        encoding (str, optional): text encoding. Defaults to "utf-8".

    Returns:
        str | ReadFailure: the decoded text, or a ReadFailure when the file is
            missing, unreadable or not valid text in `encoding`
    """
    try:
        return path.read_text(encoding=encoding)
    except UnicodeDecodeError as e:
        return ReadFailure(path=path, reason=f"not {encoding} text: {e.reason}")
    except OSError as e:
        return ReadFailure(path=path, reason=e.strerror or type(e).__name__)
