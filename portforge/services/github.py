"""Repository provisioning through the GitHub REST API."""
from urllib.parse import quote

import requests

from portforge.core.logger import get_logger
from portforge.models.deployment import RepositoryHandle
from portforge.services.http import ProviderError, error_message

logger = get_logger(__name__)

GITHUB_API_URL = "https://api.github.com"


class RepositoryError(ProviderError):
    """Raised when GitHub refuses to create or delete a repository."""

    provider = "GitHub"


class GitHubClient:
    """Creates repositories for the authenticated GitHub account."""

    def __init__(self, token: str, owner: str, timeout: int = 30, mock: bool = False,
                 api_url: str = GITHUB_API_URL):
        self.token = token
        self.owner = owner
        self.timeout = timeout
        self.mock = mock
        self.api_url = api_url.rstrip("/")

    def _headers(self) -> dict:
        return {
            "Authorization": f"token {self.token}",
            "Accept": "application/vnd.github+json",
        }

    def create_repository(self, name: str, description: str = "", private: bool = False) -> RepositoryHandle:
        """Create a repository under the token's account.

        Name collisions and authentication failures are not retried and no
        alternate name is tried.

        Raises:
            RepositoryError: GitHub rejected the request; the message
                includes GitHub's stated reason (e.g. "name already exists
                on this account")
        """
        logger.info(f"Creating repository: {name}...")

        if self.mock:
            logger.info(f"MOCK: Would create {'private' if private else 'public'} repository {self.owner}/{name}")
            return RepositoryHandle(
                name=name,
                full_name=f"{self.owner}/{name}",
                clone_url=f"https://github.com/{self.owner}/{name}.git",
                html_url=f"https://github.com/{self.owner}/{name}",
                private=private,
            )

        response = requests.post(
            f"{self.api_url}/user/repos",
            headers=self._headers(),
            json={"name": name, "description": description, "private": private},
            timeout=self.timeout,
        )
        if not response.ok:
            message = error_message(response)
            logger.error(f"Error creating repository: {message}")
            raise RepositoryError(message, status_code=response.status_code)

        data = response.json()
        handle = RepositoryHandle(
            name=data["name"],
            full_name=data.get("full_name") or f"{self.owner}/{data['name']}",
            clone_url=data["clone_url"],
            html_url=data.get("html_url", ""),
            private=bool(data.get("private", private)),
        )
        logger.info(f"Repository created successfully: {handle.html_url}")
        return handle

    def push_url(self, handle: RepositoryHandle) -> str:
        """HTTPS remote URL carrying the token, for non-interactive pushes.

        Never log the returned value.
        """
        if not self.token or not handle.clone_url.startswith("https://"):
            return handle.clone_url
        return handle.clone_url.replace(
            "https://", f"https://x-access-token:{quote(self.token, safe='')}@", 1
        )

    def delete_repository(self, full_name: str) -> None:
        """Delete a repository (used to undo a failed run)."""
        if self.mock:
            logger.info(f"MOCK: Would delete repository {full_name}")
            return

        response = requests.delete(
            f"{self.api_url}/repos/{full_name}",
            headers=self._headers(),
            timeout=self.timeout,
        )
        if not response.ok:
            raise RepositoryError(error_message(response), status_code=response.status_code)
        logger.info(f"Deleted repository {full_name}")
