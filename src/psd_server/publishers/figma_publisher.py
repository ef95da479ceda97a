"""
Figma REST API publisher.

The REST API cannot write node content, so files created in a team project
start empty. Without a team id the document structure is written to disk
instead.
"""

from typing import Any, Dict, List, Optional

import httpx

from .base_publisher import BasePublisher, ROOT_NODE_ID, file_url
from .file_publisher import FileStructurePublisher
from ..core.config import get_logger
from ..core.exceptions import PublishError
from ..models import PublishResult, SceneNode

logger = get_logger("publishers.figma")

DEFAULT_API_BASE = "https://api.figma.com/v1"


def status_kind(status_code: int) -> str:
    if status_code in (401, 403):
        return "auth"
    if status_code == 404:
        return "not_found"
    return "unknown"


class FigmaPublisher(BasePublisher):
    def __init__(
        self,
        access_token: str,
        fallback: FileStructurePublisher,
        team_id: Optional[str] = None,
        api_base: str = DEFAULT_API_BASE,
        timeout: int = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.fallback = fallback
        self.team_id = team_id
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def publish(self, document_name: str, nodes: List[SceneNode]) -> PublishResult:
        logger.info("Creating Figma file: %s", document_name)

        async with self._create_client() as client:
            await self.verify_auth(client)

            if not self.team_id:
                logger.info("No team id configured, generating file structure")
                return await self.fallback.publish(document_name, nodes)

            return await self._create_file_in_team(client, document_name)

    async def verify_auth(self, client: httpx.AsyncClient) -> Dict[str, Any]:
        user = await self._request(client, "GET", "/me")
        logger.info("Authenticated with Figma as: %s", user.get("email", "unknown"))
        return user

    async def _create_file_in_team(
        self, client: httpx.AsyncClient, document_name: str
    ) -> PublishResult:
        data = await self._request(client, "GET", f"/teams/{self.team_id}/projects")
        projects = data.get("projects") or []
        if not projects:
            raise PublishError(
                "No projects found in team",
                {"team_id": self.team_id},
                kind="not_found",
            )

        project_id = projects[0]["id"]
        logger.info("Creating file in project: %s", project_id)

        created = await self._request(
            client, "POST", f"/projects/{project_id}/files", json={"name": document_name}
        )
        try:
            file_key = created["file"]["key"]
        except (KeyError, TypeError) as e:
            raise PublishError(
                "Unexpected response when creating file",
                {"project_id": project_id},
            ) from e

        logger.info("Created file with key: %s", file_key)
        return PublishResult(
            artifact_id=file_key,
            artifact_url=file_url(file_key, document_name),
            root_node_id=ROOT_NODE_ID,
        )

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_base,
            headers={
                "X-Figma-Token": self.access_token,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        )

    async def _request(
        self, client: httpx.AsyncClient, method: str, url: str, **kwargs
    ) -> Dict[str, Any]:
        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error("Figma API %s %s failed with status %d", method, url, status_code)
            raise PublishError(
                f"Figma API request failed with status {status_code}",
                {"method": method, "url": url, "status_code": status_code},
                kind=status_kind(status_code),
            ) from e
        except httpx.TransportError as e:
            logger.error("Could not reach Figma API: %s", e)
            raise PublishError(
                f"Could not reach Figma API: {e}",
                {"method": method, "url": url},
                kind="transport",
            ) from e
        except ValueError as e:
            raise PublishError(
                "Figma API returned invalid JSON",
                {"method": method, "url": url},
            ) from e
