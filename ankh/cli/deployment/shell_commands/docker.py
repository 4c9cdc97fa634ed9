"""Docker registry queries.

Tags and images are listed through the Docker Registry HTTP API v2
(``/v2/<image>/tags/list`` and ``/v2/_catalog``).
"""

from __future__ import annotations

import httpx
from loguru import logger

from ankh.cli.deployment.constants import HTTP_TIMEOUT
from ankh.errors import ResolutionError
from ankh.utils.versions import sort_versions


class DockerCommands:
    """Docker registry operations.

    Provides operations for:
    - Listing the tags of an image
    - Listing the images of a registry
    """

    def __init__(self, client: httpx.Client | None = None) -> None:
        """Initialize Docker registry commands.

        Args:
            client: HTTP client used for registry requests
        """
        self._client = client or httpx.Client(timeout=HTTP_TIMEOUT, follow_redirects=True)

    def _get_json(self, registry: str, path: str) -> dict:
        if not registry:
            raise ResolutionError(
                "No Docker registry configured",
                details="Set `docker.registry` in your Ankh config.",
            )
        base = registry if "://" in registry else f"https://{registry}"
        url = f"{base.rstrip('/')}{path}"
        logger.debug(f"Querying Docker registry {url}")
        try:
            response = self._client.get(url)
            response.raise_for_status()
            return response.json() or {}
        except (httpx.HTTPError, ValueError) as e:
            raise ResolutionError(f"Unable to query Docker registry {url}: {e}") from e

    def list_tags(self, registry: str, image: str, *, descending: bool = True) -> list[str]:
        """Tags for ``image``, fuzzy-sorted by semantic version."""
        tags = self._get_json(registry, f"/v2/{image}/tags/list").get("tags") or []
        return sort_versions(tags, descending=descending)

    def list_images(self, registry: str, num: int = 5) -> dict[str, list[str]]:
        """Images in the registry with up to ``num`` of their newest tags (0 for all)."""
        repositories = self._get_json(registry, "/v2/_catalog").get("repositories") or []
        images = {}
        for image in sorted(repositories):
            tags = self.list_tags(registry, image)
            images[image] = tags[:num] if num > 0 else tags
        return images
