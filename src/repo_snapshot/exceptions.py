from dataclasses import dataclass


@dataclass(frozen=True)
class SnapshotError(Exception):
    """Base exception for errors in the repo_snapshot package."""

    def __str__(self) -> str:
        return getattr(self, "message", "") or (self.__doc__ or "").strip()


@dataclass(frozen=True)
class AcquisitionError(SnapshotError):
    """Raised when the repository cannot be materialized as a readable tree."""

    target: str
    message: str = "The repository could not be acquired."


@dataclass(frozen=True)
class GitCommandError(AcquisitionError):
    """Raised when a git command fails."""

    command: str = ""
    returncode: int = 0
    stderr: str = ""


@dataclass(frozen=True)
class ConfigurationError(SnapshotError):
    """Raised when options cannot be turned into a runnable pipeline."""

    message: str


@dataclass(frozen=True)
class AssemblyContractError(ConfigurationError):
    """Raised when document assembly is requested without annotated rendering."""

    message: str = "Document assembly requires the annotated renderer."
