"""
Project Membership Resolver

Asks every configured project whether it knows a phone number.
Projects expose a GET endpoint (api_url + user_numbers_api_url) that
answers ``true`` or ``{"exists": true}`` for members.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Iterable

import httpx

if TYPE_CHECKING:
    from whatsapp_router.persistence.models import Project

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 60.0
API_KEY_HEADER = "X-API-KEY"


def is_probe_configured(project: "Project") -> bool:
    return bool(project.api_url and project.user_numbers_api_url)


def build_probe_url(project: "Project") -> str:
    """Join the project's base URL and membership route."""
    base_url = project.api_url.rstrip("/")
    route = project.user_numbers_api_url
    if not route.startswith("/"):
        route = f"/{route}"
    return f"{base_url}{route}"


def is_member_response(body: Any) -> bool:
    """True for a bare ``true`` or an object with ``exists: true``."""
    if body is True:
        return True
    return isinstance(body, dict) and body.get("exists") is True


class MembershipResolver:
    """
    Resolves which projects claim a phone number.

    Probes run concurrently; a failing project is logged and left out,
    it never prevents the other probes from contributing.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.transport = transport

    async def probe(
        self,
        client: httpx.AsyncClient,
        project: "Project",
        phone: str,
    ) -> bool:
        """
        Probe one project.

        Raises:
            httpx.HTTPError: On timeout, connection error or non-2xx status
            ValueError: If the body is not JSON
        """
        headers = {}
        if project.api_key:
            headers[API_KEY_HEADER] = project.api_key

        response = await client.get(
            build_probe_url(project),
            params={"phone": phone},
            headers=headers,
        )
        response.raise_for_status()

        return is_member_response(response.json())

    async def _safe_probe(
        self,
        client: httpx.AsyncClient,
        project: "Project",
        phone: str,
    ) -> bool:
        try:
            return await self.probe(client, project, phone)
        except Exception as e:
            logger.warning(
                f"Membership probe failed for project {project.name}: {e}",
                extra={"project_id": project.id, "error_type": type(e).__name__},
            )
            return False

    async def resolve(self, projects: Iterable["Project"], phone: str) -> list[int]:
        """
        Return the ids of the projects that claim the phone number.

        Args:
            projects: Candidate projects; those without a probe endpoint are skipped
            phone: WhatsApp id as received

        Returns:
            Matching project ids in project iteration order
        """
        configured = [p for p in projects if is_probe_configured(p)]
        if not configured:
            return []

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            results = await asyncio.gather(
                *(self._safe_probe(client, project, phone) for project in configured)
            )

        matches = [project.id for project, is_member in zip(configured, results) if is_member]

        logger.info(
            "Resolved project membership",
            extra={"phone": phone, "probed": len(configured), "matches": matches},
        )

        return matches
