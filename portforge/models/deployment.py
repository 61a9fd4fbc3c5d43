"""Results produced by the deployment pipeline."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RepositoryHandle:
    """A repository provisioned on the source host."""

    name: str
    full_name: str  # owner/name
    clone_url: str
    html_url: str
    private: bool = False


@dataclass(frozen=True)
class DeploymentRecord:
    """A Vercel project link plus the deployment it triggered."""

    project_id: str
    deployment_id: str
    url: str  # always https://...


@dataclass(frozen=True)
class PipelineResult:
    """Everything a caller needs to notify the user."""

    repo_url: str
    download_url: str
    deployment_url: str
    storage_path: str
    repository: RepositoryHandle
    deployment: DeploymentRecord


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome handed back to a form handler: ok flag plus optional message."""

    ok: bool
    message: Optional[str] = None

    @classmethod
    def success(cls, message: Optional[str] = None) -> "SubmissionResult":
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, message: str) -> "SubmissionResult":
        return cls(ok=False, message=message)
