"""Link repositories to Vercel projects and trigger deployments."""
from typing import Any, Callable, Dict, Optional

import requests

from portforge.core.logger import get_logger
from portforge.models.deployment import DeploymentRecord
from portforge.services.http import ProviderError

logger = get_logger(__name__)

VERCEL_API_URL = "https://api.vercel.com"


class DeploymentError(ProviderError):
    """Raised when Vercel rejects a project link or deployment request."""

    provider = "Vercel"


class VercelClient:
    """Two-call deployment flow: link a Git repository, then deploy it.

    The URL returned by ``trigger_deployment`` is the address Vercel assigns
    immediately; the build itself is not awaited.
    """

    def __init__(self, token: str, team_id: Optional[str] = None, timeout: int = 30,
                 mock: bool = False, api_url: str = VERCEL_API_URL):
        self.token = token
        self.team_id = team_id
        self.timeout = timeout
        self.mock = mock
        self.api_url = api_url.rstrip("/")

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

    def _params(self) -> dict:
        return {"teamId": self.team_id} if self.team_id else {}

    def _post(self, path: str, payload: Dict[str, Any], action: str) -> Dict[str, Any]:
        response = requests.post(
            f"{self.api_url}{path}",
            headers=self._headers(),
            params=self._params(),
            json=payload,
            timeout=self.timeout,
        )
        if not response.ok:
            raise DeploymentError(f"{action} failed: {response.text}", status_code=response.status_code)
        return response.json()

    def link_project(
        self,
        name: str,
        repo: str,
        build_command: str = "npm run build",
        output_directory: str = "dist",
    ) -> Dict[str, Any]:
        """Create a Vercel project bound to a GitHub repository.

        Args:
            name: Project name
            repo: GitHub reference in ``owner/name`` form
            build_command: Command Vercel runs to build the site
            output_directory: Directory holding the built site

        Returns:
            Project data as returned by Vercel (includes ``id`` and ``link``)
        """
        if self.mock:
            logger.info(f"MOCK: Would link Vercel project {name} to {repo}")
            return {"id": f"prj_{name}", "name": name, "link": {"type": "github", "repoId": 0}}

        payload = {
            "name": name,
            "gitRepository": {"type": "github", "repo": repo},
            "buildCommand": build_command,
            "outputDirectory": output_directory,
        }
        project = self._post("/v9/projects", payload, "Vercel project creation")
        logger.info(f"Linked to Vercel project: {project.get('id')}")
        return project

    def trigger_deployment(self, name: str, project: Dict[str, Any], ref: str = "main") -> DeploymentRecord:
        """Request a deployment of ``ref`` for a linked project."""
        repo_id = (project.get("link") or {}).get("repoId")
        logger.info(f"Triggering Vercel deployment for {name} (repo {repo_id})")

        if self.mock:
            logger.info(f"MOCK: Would deploy {name}@{ref}")
            return DeploymentRecord(
                project_id=project.get("id", ""),
                deployment_id=f"dpl_{name}",
                url=f"https://{name}.vercel.app",
            )

        payload = {
            "name": name,
            "gitSource": {"type": "github", "repoId": repo_id, "ref": ref},
        }
        data = self._post("/v13/deployments", payload, "Vercel deployment")

        record = DeploymentRecord(
            project_id=project.get("id", ""),
            deployment_id=data.get("id", ""),
            url=f"https://{data['url']}",
        )
        logger.info(f"Deployment started: {record.url}")
        return record

    def deploy(
        self,
        name: str,
        repo: str,
        ref: str = "main",
        build_command: str = "npm run build",
        output_directory: str = "dist",
        on_linked: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> DeploymentRecord:
        """Link the repository, then trigger its first deployment.

        ``on_linked`` is called with the project data between the two calls.
        """
        project = self.link_project(name, repo, build_command, output_directory)
        if on_linked is not None:
            on_linked(project)
        return self.trigger_deployment(name, project, ref=ref)

    def delete_project(self, project_id: str) -> None:
        """Remove a Vercel project (used to undo a failed run)."""
        if self.mock:
            logger.info(f"MOCK: Would delete Vercel project {project_id}")
            return

        response = requests.delete(
            f"{self.api_url}/v9/projects/{project_id}",
            headers=self._headers(),
            params=self._params(),
            timeout=self.timeout,
        )
        if not response.ok:
            raise DeploymentError(f"Vercel project deletion failed: {response.text}",
                                  status_code=response.status_code)
        logger.info(f"Deleted Vercel project {project_id}")
