"""Git publishing of a generated project in size-bounded commits."""
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from portforge.core.logger import get_logger, redact

logger = get_logger(__name__)

CATCH_ALL_MESSAGE = "Add remaining files"
NOTHING_TO_COMMIT_MARKERS = (
    "nothing to commit",
    "nothing added to commit",
    "no changes added to commit",
)

# Git output is parsed in a few places; keep it untranslated
GIT_ENV_OVERRIDES = {"LC_ALL": "C", "LANGUAGE": "C"}


class GitCommandError(Exception):
    """A git command exited with an error."""

    def __init__(self, args: Sequence[str], returncode: int, output: str = ""):
        self.command = redact(" ".join(args))
        self.returncode = returncode
        self.output = redact(output.strip())
        message = f"`{self.command}` failed with exit code {returncode}"
        if self.output:
            message += f": {self.output}"
        super().__init__(message)


@dataclass(frozen=True)
class CommitPlan:
    """Large top-level folders committed one by one before everything else."""

    large_folders: Tuple[str, ...] = ("dist", "public", "src")

    def folder_message(self, folder: str) -> str:
        return f"Add folder: {folder}"

    def present_folders(self, path: Path) -> List[str]:
        """Named folders that exist in path, in declared order."""
        return [folder for folder in self.large_folders if (Path(path) / folder).exists()]


class GitPublisher:
    """Pushes a working directory to a remote repository.

    Every step is idempotent against a directory that was already
    initialized or already has the remote configured.
    """

    def __init__(self, author_name: Optional[str] = None, author_email: Optional[str] = None,
                 mock: bool = False):
        self.author_name = author_name
        self.author_email = author_email
        self.mock = mock

    def _run(self, args: List[str], cwd: Path, check: bool = True) -> subprocess.CompletedProcess:
        """Run git with args in cwd.

        Raises:
            GitCommandError: The command failed and check is True
        """
        cmd = ['git'] + args
        logger.debug(f"Running: {redact(' '.join(cmd))}")
        try:
            result = subprocess.run(
                cmd,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                check=False,
                env={**os.environ, **GIT_ENV_OVERRIDES},
            )
        except FileNotFoundError as e:
            raise GitCommandError(cmd, 127, "git not found. Please install git first.") from e

        if check and result.returncode != 0:
            raise GitCommandError(cmd, result.returncode, result.stderr or result.stdout or "")
        return result

    def ensure_repository(self, path: Path) -> bool:
        """Initialize git in path unless it already has a repository.

        Returns:
            True if a new repository was initialized
        """
        if (Path(path) / ".git").exists():
            logger.debug(f"Git repository already exists in {path}")
            return False

        logger.info("Initializing Git...")
        self._run(['init'], cwd=path)
        return True

    def remote_url(self, path: Path, remote: str = "origin") -> Optional[str]:
        """Current URL of remote, or None if the remote is not configured."""
        result = self._run(['remote', 'get-url', remote], cwd=path, check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def configure_remote(self, path: Path, url: str, remote: str = "origin") -> None:
        """Point remote at url, adding it if missing."""
        if self.remote_url(path, remote) is not None:
            logger.info("Updating remote repository URL...")
            self._run(['remote', 'set-url', remote, url], cwd=path)
        else:
            logger.info("Adding remote repository...")
            self._run(['remote', 'add', remote, url], cwd=path)

    def has_commits(self, path: Path) -> bool:
        result = self._run(['rev-parse', '--verify', '--quiet', 'HEAD'], cwd=path, check=False)
        return result.returncode == 0

    def ensure_branch(self, path: Path, branch: str = "main") -> None:
        """Force the current branch name to branch."""
        logger.info(f"Ensuring branch {branch} exists...")
        if self.has_commits(path):
            self._run(['branch', '-M', branch], cwd=path)
        else:
            # Unborn HEAD: nothing to rename yet
            self._run(['symbolic-ref', 'HEAD', f'refs/heads/{branch}'], cwd=path)

    def is_ignored(self, path: Path, entry: str) -> bool:
        """Whether entry is excluded by the project's .gitignore."""
        result = self._run(['check-ignore', '--quiet', entry], cwd=path, check=False)
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise GitCommandError(['git', 'check-ignore', '--quiet', entry], result.returncode,
                              result.stderr or "")

    def stage(self, path: Path, entry: str) -> None:
        self._run(['add', '--', entry], cwd=path)

    def has_staged_changes(self, path: Path) -> bool:
        """Whether the index differs from HEAD (or from the empty tree on an unborn branch)."""
        result = self._run(['diff', '--cached', '--quiet'], cwd=path, check=False)
        if result.returncode == 0:
            return False
        if result.returncode == 1:
            return True
        raise GitCommandError(['git', 'diff', '--cached', '--quiet'], result.returncode,
                              result.stderr or "")

    def commit(self, path: Path, message: str) -> bool:
        """Commit staged changes.

        Returns:
            True if a commit was created, False if there was nothing to commit

        Raises:
            GitCommandError: The commit failed for any other reason
        """
        if not self.has_staged_changes(path):
            logger.info(f"Nothing to commit for '{message}', skipping")
            return False

        args = []
        if self.author_name:
            args += ['-c', f'user.name={self.author_name}']
        if self.author_email:
            args += ['-c', f'user.email={self.author_email}']
        args += ['commit', '-m', message]

        result = self._run(args, cwd=path, check=False)
        if result.returncode == 0:
            return True

        output = f"{result.stdout}\n{result.stderr}"
        if any(marker in output for marker in NOTHING_TO_COMMIT_MARKERS):
            logger.info(f"Nothing to commit for '{message}', skipping")
            return False

        raise GitCommandError(['git'] + args, result.returncode, result.stderr or result.stdout or "")

    def commit_plan(self, path: Path, plan: CommitPlan) -> List[str]:
        """Commit each large folder separately, then everything else.

        Returns:
            Messages of the commits that were actually created, in order
        """
        created = []
        for folder in plan.large_folders:
            if not (Path(path) / folder).exists():
                logger.info(f"Folder {folder} does not exist, skipping...")
                continue
            if self.is_ignored(path, folder):
                logger.info(f"Skipping ignored folder: {folder}")
                continue

            logger.info(f"Adding and committing folder: {folder}...")
            self.stage(path, folder)
            message = plan.folder_message(folder)
            if self.commit(path, message):
                created.append(message)

        logger.info("Adding and committing remaining files...")
        self.stage(path, '.')
        if self.commit(path, CATCH_ALL_MESSAGE):
            created.append(CATCH_ALL_MESSAGE)

        return created

    def push(self, path: Path, branch: str = "main", remote: str = "origin",
             url: Optional[str] = None) -> None:
        """Push branch to remote.

        When url is given (e.g. one carrying an access token) the push goes
        to that URL directly and only the upstream tracking settings are
        recorded, so the URL is never written to .git/config.
        """
        logger.info(f"Pushing code to branch: {branch}...")
        if url is None:
            self._run(['push', '-u', remote, branch], cwd=path)
            return

        self._run(['push', url, branch], cwd=path)
        self._run(['config', f'branch.{branch}.remote', remote], cwd=path)
        self._run(['config', f'branch.{branch}.merge', f'refs/heads/{branch}'], cwd=path)

    def publish(
        self,
        path: Path,
        remote_url: str,
        branch: str = "main",
        plan: Optional[CommitPlan] = None,
        remote: str = "origin",
        push_url: Optional[str] = None,
    ) -> List[str]:
        """Initialize, configure, commit in chunks and push path.

        remote_url is stored as the remote and must not carry credentials;
        push_url, if given, is used for the push only.
        Any failing step raises immediately; local git state is not rolled back.

        Returns:
            Messages of the commits created by this run
        """
        plan = plan or CommitPlan()
        path = Path(path)
        logger.info(f"Publishing {path} to {redact(remote_url)} ({branch})")

        if self.mock:
            planned = [plan.folder_message(f) for f in plan.present_folders(path)]
            planned.append(CATCH_ALL_MESSAGE)
            logger.info(f"MOCK: Would push {len(planned)} commit(s) to {redact(remote_url)}")
            return planned

        self.ensure_repository(path)
        self.configure_remote(path, remote_url, remote)
        self.ensure_branch(path, branch)
        created = self.commit_plan(path, plan)
        self.push(path, branch, remote, url=push_url)

        logger.info("Code pushed successfully in steps")
        return created
