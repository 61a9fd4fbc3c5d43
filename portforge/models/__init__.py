"""Data models for portforge."""
from portforge.models.deployment import (
    DeploymentRecord,
    PipelineResult,
    RepositoryHandle,
    SubmissionResult,
)
from portforge.models.user import UserData

__all__ = [
    'DeploymentRecord',
    'PipelineResult',
    'RepositoryHandle',
    'SubmissionResult',
    'UserData',
]
