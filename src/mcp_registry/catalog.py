"""Registry client - Fetch the catalog index and server manifests over HTTP.

Registry layout:
    <registry_url>/index.json                    RegistryIndex
    <registry_url>/servers/<id>/manifest.json    ServerManifest

Search and pagination run client-side against the fetched index.
"""

import asyncio
import logging

import httpx
from pydantic import ValidationError

from .exceptions import CatalogError
from .exceptions import ServerNotFoundError
from .schema import RegistryEntry
from .schema import RegistryIndex
from .schema import SearchResult
from .schema import ServerManifest

logger = logging.getLogger(__name__)


class RegistryClient:
    """
    Async client for a static JSON registry.

    Example:
        >>> client = RegistryClient("https://registry.mcp.dev")
        >>> result = await client.search("filesystem")
        >>> [m.id for m in result.servers]
        ['filesystem']
    """

    def __init__(
        self,
        base_url: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        """Initialize client.

        Args:
            base_url: Registry root URL
            transport: Optional httpx transport (tests pass httpx.MockTransport)
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, transport=self.transport, timeout=self.timeout)

    async def get_index(self) -> RegistryIndex:
        """Fetch the full registry index."""
        async with self._client() as client:
            return await self._fetch_index(client)

    async def get_manifest(self, server_id: str) -> ServerManifest:
        """
        Fetch one server's manifest.

        Raises:
            ServerNotFoundError: Registry has no manifest for the id
            CatalogError: Request failed or manifest is invalid
        """
        async with self._client() as client:
            return await self._fetch_manifest(client, server_id)

    async def get_server(self, server_id: str) -> ServerManifest | None:
        """Like get_manifest, but None when the server doesn't exist."""
        try:
            return await self.get_manifest(server_id)
        except ServerNotFoundError:
            return None

    async def search(self, query: str, page: int = 1, page_size: int = 20) -> SearchResult:
        """
        Search id, description and keywords (case-insensitive substring match).

        Args:
            query: Search text
            page: 1-based page number
            page_size: Results per page

        Returns:
            SearchResult with resolved manifests for the requested page
        """
        needle = query.lower()
        async with self._client() as client:
            index = await self._fetch_index(client)
            matches = [entry for entry in index.servers if _matches(entry, needle)]
            return await self._paginate(client, matches, page, page_size)

    async def list_servers(self, page: int = 1, page_size: int = 20) -> SearchResult:
        """List all servers, one page at a time."""
        async with self._client() as client:
            index = await self._fetch_index(client)
            return await self._paginate(client, index.servers, page, page_size)

    async def get_popular(self, limit: int = 10) -> list[ServerManifest]:
        """Most downloaded servers first."""
        async with self._client() as client:
            index = await self._fetch_index(client)
            top = sorted(index.servers, key=lambda entry: entry.downloads, reverse=True)[:limit]
            return await self._fetch_manifests(client, top)

    async def get_recent(self, limit: int = 10) -> list[ServerManifest]:
        """Most recently updated servers first.

        The index carries no dates, so every manifest is fetched and ordered by
        ``stats.lastUpdated``; servers without a date sort last.
        """
        async with self._client() as client:
            index = await self._fetch_index(client)
            manifests = await self._fetch_manifests(client, index.servers)

        dated = [m for m in manifests if m.stats and m.stats.last_updated]
        undated = [m for m in manifests if not (m.stats and m.stats.last_updated)]
        dated.sort(key=lambda m: m.stats.last_updated, reverse=True)
        return (dated + undated)[:limit]

    async def get_categories(self) -> list[str]:
        """All keywords used in the index, sorted."""
        index = await self.get_index()
        return sorted({keyword for entry in index.servers for keyword in entry.keywords})

    async def _paginate(
        self,
        client: httpx.AsyncClient,
        entries: list[RegistryEntry],
        page: int,
        page_size: int,
    ) -> SearchResult:
        page = max(page, 1)
        start = (page - 1) * page_size
        servers = await self._fetch_manifests(client, entries[start : start + page_size])
        return SearchResult(servers=servers, total=len(entries), page=page, page_size=page_size)

    async def _fetch_manifests(self, client: httpx.AsyncClient, entries: list[RegistryEntry]) -> list[ServerManifest]:
        return list(await asyncio.gather(*(self._fetch_manifest(client, entry.id) for entry in entries)))

    async def _fetch_index(self, client: httpx.AsyncClient) -> RegistryIndex:
        try:
            data = await self._get_json(client, "/index.json")
        except ServerNotFoundError as e:
            raise CatalogError(f"Registry index not found at {self.base_url}", context=e.context) from None
        try:
            index = RegistryIndex.model_validate(data)
        except ValidationError as e:
            raise CatalogError(f"Invalid registry index: {e}", context={"url": self.base_url}) from e
        logger.debug(f"Fetched index with {len(index.servers)} servers")
        return index

    async def _fetch_manifest(self, client: httpx.AsyncClient, server_id: str) -> ServerManifest:
        path = f"/servers/{server_id}/manifest.json"
        try:
            data = await self._get_json(client, path)
        except ServerNotFoundError:
            raise ServerNotFoundError(f"Server '{server_id}' not found", context={"server_id": server_id}) from None
        try:
            return ServerManifest.model_validate(data)
        except ValidationError as e:
            raise CatalogError(
                f"Invalid manifest for server '{server_id}': {e}", context={"server_id": server_id}
            ) from e

    async def _get_json(self, client: httpx.AsyncClient, path: str):
        url = f"{self.base_url}{path}"
        logger.debug(f"GET {url}")
        try:
            response = await client.get(path)
        except httpx.HTTPError as e:
            raise CatalogError(f"Failed to fetch {url}: {e}", context={"url": url}) from e

        if response.status_code == 404:
            raise ServerNotFoundError(f"Not found: {url}", context={"url": url})
        if response.is_error:
            raise CatalogError(f"Failed to fetch {url}: HTTP {response.status_code}", context={"url": url})

        try:
            return response.json()
        except ValueError as e:
            raise CatalogError(f"Invalid JSON from {url}: {e}", context={"url": url}) from e


def _matches(entry: RegistryEntry, needle: str) -> bool:
    return (
        needle in entry.id.lower()
        or needle in entry.description.lower()
        or any(needle in keyword.lower() for keyword in entry.keywords)
    )
