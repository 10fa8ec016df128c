from __future__ import annotations

import os
import subprocess  # noqa: S404
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlsplit, urlunsplit

from repo_snapshot.config import ALWAYS_PRUNED_DIRS, AuthMethod
from repo_snapshot.exceptions import AcquisitionError, GitCommandError
from repo_snapshot.file_manipulation import PathMatcher, relpath
from repo_snapshot.logging import logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


def repository_name(target: str) -> str:
    """Derive a repository name from a URL or a local path.

    >>> repository_name("https://github.com/expressjs/express.git")
    'express'
    """
    tail = target.rstrip("/\\").replace("\\", "/").rsplit("/", 1)[-1]
    tail = tail.rsplit(":", 1)[-1]
    return tail.removesuffix(".git") or "repo"


def is_remote(target: str) -> bool:
    """Check if a target names a remote repository rather than a local directory."""
    if Path(target).expanduser().is_dir():
        return False
    scheme = urlsplit(target).scheme
    return scheme in {"http", "https", "ssh", "git", "file"} or target.startswith("git@")


def authenticated_url(url: str, method: AuthMethod, env: Mapping[str, str] | None = None) -> str:
    """Return the URL git should clone for an authentication method.

    SSH leaves the URL alone and relies on the user's SSH setup. HTTPS puts
    ``GITHUB_USERNAME`` and ``GITHUB_TOKEN`` into the URL's user info.

    Args:
        url (str): the repository URL
        method (AuthMethod): how credentials are supplied
        env (Mapping[str, str] | None): where to read credentials; defaults to ``os.environ``

    Raises:
        AcquisitionError: if HTTPS is requested and credentials are missing or the URL is not https

    Returns:
        str: the URL to hand to ``git clone``
    """
    if method is AuthMethod.SSH:
        return url
    env = os.environ if env is None else env
    username = env.get("GITHUB_USERNAME", "")
    token = env.get("GITHUB_TOKEN", "")
    if not username or not token:
        raise AcquisitionError(target=url, message="GITHUB_USERNAME and GITHUB_TOKEN must be set for https auth.")
    parts = urlsplit(url)
    if parts.scheme != "https":
        raise AcquisitionError(target=url, message="https auth requires an https:// repository URL.")
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    netloc = f"{quote(username, safe='')}:{quote(token, safe='')}@{host}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def git_clone(url: str, destination: Path, *, display_url: str | None = None) -> None:
    """Shallow-clone `url` into `destination`.

    Args:
        url (str): the URL to clone (may embed credentials)
        destination (Path): directory to clone into; must not exist yet
        display_url (str | None): URL used in logs and errors instead of `url`

    Raises:
        GitCommandError: if git is missing or the clone fails
    """
    shown = display_url or url
    command = ["git", "clone", "--depth", "1", url, str(destination)]
    logger.info("Cloning repository", url=shown, destination=str(destination))
    try:
        subprocess.run(  # noqa: S603
            command,
            text=True,
            capture_output=True,
            check=True,
        )
    except FileNotFoundError as e:
        raise GitCommandError(target=shown, message="git executable not found.", command="git clone") from e
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").replace(url, shown)
        raise GitCommandError(
            target=shown,
            message=f"git clone failed: {stderr.strip()}",
            command=f"git clone --depth 1 {shown}",
            returncode=e.returncode,
            stderr=stderr,
        ) from e


def walk_files(root: Path, *, dot: bool = False) -> list[str]:
    """Walk the directory tree rooted at `root` and return relative paths of all files.

    Args:
        root (Path): the root directory to walk
        dot (bool, optional): include files and directories whose name starts with a dot.
            ``.git`` is always pruned. Defaults to False.

    Returns:
        list[str]: sorted POSIX paths relative to `root`
    """
    results: list[str] = []
    for current, dirs, files in os.walk(root):
        dirs[:] = [d for d in dirs if d not in ALWAYS_PRUNED_DIRS and (dot or not d.startswith("."))]
        for f in files:
            if not dot and f.startswith("."):
                continue
            p = Path(current) / f
            if p.is_file():
                results.append(relpath(p, root))
    return sorted(results)


class RepositorySource:
    """A repository materialized as a readable file tree."""

    def __init__(self, root: Path, name: str) -> None:
        self.root = root
        self.name = name

    def enumerate(
        self,
        include: Sequence[str] = (),
        exclude: Sequence[str] = (),
        *,
        dot: bool = False,
    ) -> list[str]:
        """List the candidate paths of the tree that pass the include/exclude globs.

        Args:
            include (Sequence[str]): include globs; empty means every file with an extension
            exclude (Sequence[str]): exclude globs
            dot (bool, optional): consider dot-files and dot-directories. Defaults to False.

        Returns:
            list[str]: sorted repository-relative paths
        """
        matcher = PathMatcher(include, exclude)
        return [rel for rel in walk_files(self.root, dot=dot) if matcher.matches(rel)]

    def __repr__(self) -> str:
        return f"RepositorySource(root={self.root!r}, name={self.name!r})"


class RepositoryCheckout:
    """A repository materialized for the duration of a ``with`` block.

    Local directories are used in place and left untouched. Anything else is
    cloned into a temporary directory that is removed by `close`.
    """

    def __init__(
        self,
        target: str,
        *,
        auth_method: AuthMethod = AuthMethod.SSH,
        work_dir: Path | None = None,
    ) -> None:
        self.target = target
        self.auth_method = auth_method
        self.work_dir = work_dir
        self._tmp: tempfile.TemporaryDirectory[str] | None = None

    def open(self) -> RepositorySource:
        """Materialize the repository.

        Raises:
            AcquisitionError: if the target is neither a directory nor a clonable repository

        Returns:
            RepositorySource: the materialized repository
        """
        name = repository_name(self.target)
        if not is_remote(self.target):
            root = Path(self.target).expanduser().resolve()
            if not root.is_dir():
                raise AcquisitionError(
                    target=self.target,
                    message=f"{self.target} is not a directory or a repository URL.",
                )
            return RepositorySource(root, root.name or name)

        url = authenticated_url(self.target, self.auth_method)
        if self.work_dir is not None:
            self.work_dir.mkdir(parents=True, exist_ok=True)
        self._tmp = tempfile.TemporaryDirectory(prefix=f"{name}-", dir=self.work_dir)
        clone_path = Path(self._tmp.name) / name
        try:
            git_clone(url, clone_path, display_url=self.target)
        except GitCommandError:
            self.close()
            raise
        return RepositorySource(clone_path, name)

    def close(self) -> None:
        """Remove the temporary clone, if any."""
        if self._tmp is None:
            return
        self._tmp.cleanup()
        self._tmp = None
        logger.info("Removed clone", url=self.target)

    def __enter__(self) -> RepositorySource:
        return self.open()

    def __exit__(self, *args: Any) -> None:
        self.close()


def open_repository(
    target: str,
    *,
    auth_method: AuthMethod = AuthMethod.SSH,
    work_dir: Path | None = None,
) -> RepositoryCheckout:
    """Get a context manager materializing a repository.

    Args:
        target (str): repository URL or local directory
        auth_method (AuthMethod): credentials used to clone remote repositories
        work_dir (Path | None): parent directory for the temporary clone

    Returns:
        RepositoryCheckout: use it in a ``with`` block to get a RepositorySource
    """
    return RepositoryCheckout(target, auth_method=auth_method, work_dir=work_dir)
