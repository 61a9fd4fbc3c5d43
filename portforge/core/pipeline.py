"""Portfolio generation and deployment pipeline.

Stages run strictly in order, each one waiting for the previous:

1. materialize the template into <work_dir>/<slug>/site
2. archive it to <work_dir>/<slug>/<slug>.zip
3. upload the archive to object storage
4. create the GitHub repository
5. push the project in chunked commits
6. link the repository to Vercel and trigger a deployment

Local artifacts are removed at the end of every run, successful or not.
Remote resources are only rolled back when rollback_on_failure is set.
"""
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from portforge.core.cleanup import remove_directory, remove_file
from portforge.core.compensation import CompensationStack
from portforge.core.config import PipelineConfig
from portforge.core.identity import ProjectIdentity
from portforge.core.lock import project_lock
from portforge.core.logger import get_logger
from portforge.models.deployment import (
    DeploymentRecord,
    PipelineResult,
    RepositoryHandle,
    SubmissionResult,
)
from portforge.models.user import UserData
from portforge.scaffold.archiver import zip_folder
from portforge.scaffold.materializer import TemplateMaterializer, write_vercel_config
from portforge.services.git_manager import CommitPlan, GitPublisher
from portforge.services.github import GitHubClient
from portforge.services.storage import SupabaseStorage
from portforge.services.vercel import VercelClient

logger = get_logger(__name__)

Notifier = Callable[[UserData, PipelineResult], None]

# Every file a run writes lives under <work_dir>/<slug>/. Locks sit in a
# dot-directory, which no slug can name.
SITE_DIR_NAME = "site"
LOCK_DIR_NAME = ".locks"


@dataclass
class ExecutionContext:
    """In-flight state of one run. Never shared between runs."""

    identity: ProjectIdentity
    run_dir: Path
    output_dir: Path
    archive_path: Path
    stage: str = "init"
    storage_path: Optional[str] = None
    download_url: Optional[str] = None
    repository: Optional[RepositoryHandle] = None
    deployment: Optional[DeploymentRecord] = None
    compensations: CompensationStack = field(default_factory=CompensationStack)


class PortfolioPipeline:
    """Runs the generate -> archive -> upload -> provision -> publish -> deploy sequence."""

    def __init__(
        self,
        config: PipelineConfig,
        storage: Optional[SupabaseStorage] = None,
        github: Optional[GitHubClient] = None,
        publisher: Optional[GitPublisher] = None,
        vercel: Optional[VercelClient] = None,
        materializer: Optional[TemplateMaterializer] = None,
        notifier: Optional[Notifier] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the pipeline.

        Args:
            config: Resolved configuration; the only source of credentials
            storage, github, publisher, vercel, materializer: Overrides for
                the stage components (built from config when omitted)
            notifier: Called with the user data and result after a
                successful deployment
            sleep: Sleep function used by cleanup retries
        """
        creds = config.credentials
        self.config = config
        self.storage = storage or SupabaseStorage(
            creds.storage_url,
            creds.storage_key,
            bucket=config.storage_bucket,
            prefix=config.storage_prefix,
            timeout=config.request_timeout,
            mock=config.mock,
        )
        self.github = github or GitHubClient(
            creds.source_host_token,
            creds.source_host_owner,
            timeout=config.request_timeout,
            mock=config.mock,
        )
        self.publisher = publisher or GitPublisher(
            author_name=config.commit_author_name,
            author_email=config.commit_author_email,
            mock=config.mock,
        )
        self.vercel = vercel or VercelClient(
            creds.deploy_token,
            team_id=config.vercel_team_id,
            timeout=config.request_timeout,
            mock=config.mock,
        )
        self.materializer = materializer or TemplateMaterializer(config.template_dir)
        self.notifier = notifier
        self.commit_plan = CommitPlan(config.large_folders)
        self._sleep = sleep

    def create_context(self, identity: ProjectIdentity, output_dir: Optional[Path] = None) -> ExecutionContext:
        run_dir = self.config.work_dir / identity.slug
        return ExecutionContext(
            identity=identity,
            run_dir=run_dir,
            output_dir=Path(output_dir) if output_dir else run_dir / SITE_DIR_NAME,
            archive_path=run_dir / identity.archive_name,
        )

    def lock_file(self, identity: ProjectIdentity) -> Path:
        return self.config.work_dir / LOCK_DIR_NAME / f"{identity.slug}.lock"

    def run(self, user_data: UserData) -> PipelineResult:
        """Generate, publish and deploy a portfolio for user_data.

        Raises:
            LockError: Another run for the same project is in progress
            Exception: The first stage error, unchanged
        """
        identity = ProjectIdentity.from_display_name(user_data.name)
        ctx = self.create_context(identity)

        logger.info(f"Starting portfolio pipeline for '{identity.display_name}' ({identity.slug})")
        with project_lock(self.lock_file(identity), timeout=self.config.lock_timeout):
            ctx.run_dir.mkdir(parents=True, exist_ok=True)
            failed = True
            try:
                result = self._execute(ctx, user_data)
                failed = False
            except Exception as e:
                self._handle_failure(ctx, e)
                raise
            finally:
                self.cleanup(ctx, suppress_errors=failed)

        logger.info(f"Portfolio live at: {result.deployment_url}")
        return result

    def _execute(self, ctx: ExecutionContext, user_data: UserData) -> PipelineResult:
        ctx.stage = "materialize"
        self.materializer.materialize(ctx.output_dir, user_data, overwrite=True)
        write_vercel_config(ctx.output_dir)

        ctx.stage = "archive"
        zip_folder(ctx.output_dir, ctx.archive_path)

        self._upload(ctx)
        self._provision(ctx)
        self._publish(ctx)
        self._deploy(ctx)

        result = PipelineResult(
            repo_url=ctx.repository.clone_url,
            download_url=ctx.download_url,
            deployment_url=ctx.deployment.url,
            storage_path=ctx.storage_path,
            repository=ctx.repository,
            deployment=ctx.deployment,
        )

        if self.notifier is not None:
            ctx.stage = "notify"
            self.notifier(user_data, result)

        ctx.stage = "done"
        return result

    def _upload(self, ctx: ExecutionContext) -> None:
        ctx.stage = "upload"
        file_name = ctx.identity.archive_name
        ctx.storage_path = self.storage.upload(ctx.archive_path, file_name)
        ctx.compensations.register(
            f"delete uploaded archive {ctx.storage_path}",
            lambda: self.storage.delete(file_name),
        )
        ctx.download_url = self.storage.public_url(file_name)
        logger.info(f"Public download link: {ctx.download_url}")

    def _provision(self, ctx: ExecutionContext) -> None:
        ctx.stage = "provision"
        repository = self.github.create_repository(
            ctx.identity.slug,
            description=self.config.repo_description,
            private=self.config.private_repo,
        )
        ctx.repository = repository
        ctx.compensations.register(
            f"delete repository {repository.full_name}",
            lambda: self.github.delete_repository(repository.full_name),
        )

    def _publish(self, ctx: ExecutionContext) -> None:
        ctx.stage = "publish"
        self.publisher.publish(
            ctx.output_dir,
            ctx.repository.clone_url,
            branch=self.config.branch,
            plan=self.commit_plan,
            remote=self.config.remote_name,
            push_url=self.github.push_url(ctx.repository),
        )

    def _deploy(self, ctx: ExecutionContext) -> None:
        ctx.stage = "deploy"

        def register_project(project: Dict[str, Any]) -> None:
            project_id = project.get("id")
            if project_id:
                ctx.compensations.register(
                    f"delete Vercel project {project_id}",
                    lambda: self.vercel.delete_project(project_id),
                )

        ctx.deployment = self.vercel.deploy(
            ctx.identity.slug,
            ctx.repository.full_name,
            ref=self.config.branch,
            build_command=self.config.build_command,
            output_directory=self.config.output_directory,
            on_linked=register_project,
        )

    def _handle_failure(self, ctx: ExecutionContext, error: Exception) -> None:
        logger.error(f"Portfolio pipeline failed during {ctx.stage}: {error}")
        if not ctx.compensations:
            return
        if self.config.rollback_on_failure:
            ctx.compensations.unwind()
        else:
            logger.warning(
                "Leaving remote resources in place: " + ", ".join(ctx.compensations.descriptions)
            )

    def cleanup(self, ctx: ExecutionContext, suppress_errors: bool = False) -> None:
        """Remove the run's archive and working directory.

        Archive deletion is always attempted and only logged on failure. The
        run directory is deleted with the configured retry policy; once
        retries are exhausted the error propagates unless suppress_errors is
        set (used when the run already failed).
        """
        try:
            remove_file(ctx.archive_path)
        except OSError as e:
            logger.warning(f"Could not delete archive {ctx.archive_path}: {e}")

        if self.config.keep_output:
            logger.info(f"Keeping generated folder: {ctx.output_dir}")
        else:
            try:
                remove_directory(ctx.run_dir, self.config.cleanup_policy, sleep=self._sleep)
            except OSError as e:
                if not suppress_errors:
                    raise
                logger.error(f"Could not delete generated folder {ctx.run_dir}: {e}")

    def deploy_project(self, project_dir: Path, display_name: str) -> PipelineResult:
        """Provision, publish and deploy an already generated project.

        The project directory is left in place.
        """
        identity = ProjectIdentity.from_display_name(display_name)
        ctx = self.create_context(identity, output_dir=project_dir)
        try:
            self._provision(ctx)
            self._publish(ctx)
            self._deploy(ctx)
        except Exception as e:
            self._handle_failure(ctx, e)
            raise

        logger.info(f"Portfolio live at: {ctx.deployment.url}")
        return PipelineResult(
            repo_url=ctx.repository.clone_url,
            download_url="",
            deployment_url=ctx.deployment.url,
            storage_path="",
            repository=ctx.repository,
            deployment=ctx.deployment,
        )

    def submit(self, user_data: Union[UserData, Dict[str, Any]]) -> SubmissionResult:
        """Run the pipeline for a form submission and report ok/failure.

        Never raises; the failure message carries the underlying error text.
        """
        try:
            if not isinstance(user_data, UserData):
                user_data = UserData.model_validate(user_data)
            result = self.run(user_data)
        except Exception as e:
            return SubmissionResult.failure(f"Failed to create user portfolio: {e}")
        return SubmissionResult.success(
            f"User portfolio created successfully! Live at {result.deployment_url}"
        )
