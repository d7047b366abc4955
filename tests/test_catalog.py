"""Tests for RegistryClient against a mocked HTTP registry."""

import httpx
import pytest
from mcp_registry import CatalogError
from mcp_registry import RegistryClient
from mcp_registry import ServerNotFoundError


@pytest.mark.asyncio
async def test_get_index(registry_client):
    index = await registry_client.get_index()

    assert index.total_servers == 3
    assert [e.id for e in index.servers] == ["filesystem", "github", "postgres"]


@pytest.mark.asyncio
async def test_get_manifest(registry_client):
    manifest = await registry_client.get_manifest("github")

    assert manifest.id == "github"
    assert manifest.installation.npm_package == "@mcp/github"


@pytest.mark.asyncio
async def test_get_manifest_not_found(registry_client):
    with pytest.raises(ServerNotFoundError, match="Server 'nope' not found"):
        await registry_client.get_manifest("nope")

    assert await registry_client.get_server("nope") is None


@pytest.mark.asyncio
async def test_search_matches_id_description_keywords(registry_client):
    by_keyword = await registry_client.search("SQL")
    by_id = await registry_client.search("git")
    by_description = await registry_client.search("the filesystem server")

    assert [m.id for m in by_keyword.servers] == ["postgres"]
    assert [m.id for m in by_id.servers] == ["github"]
    assert [m.id for m in by_description.servers] == ["filesystem"]


@pytest.mark.asyncio
async def test_search_paginates(registry_client):
    result = await registry_client.search("server", page=2, page_size=2)

    assert result.total == 3
    assert result.page == 2
    assert [m.id for m in result.servers] == ["postgres"]
    assert result.total_pages == 2


@pytest.mark.asyncio
async def test_search_no_results(registry_client):
    result = await registry_client.search("zzz")

    assert result.servers == []
    assert result.total == 0


@pytest.mark.asyncio
async def test_list_servers(registry_client):
    result = await registry_client.list_servers(page=1, page_size=2)

    assert result.total == 3
    assert [m.id for m in result.servers] == ["filesystem", "github"]


@pytest.mark.asyncio
async def test_page_below_one_is_first_page(registry_client):
    result = await registry_client.list_servers(page=0, page_size=1)

    assert result.page == 1
    assert [m.id for m in result.servers] == ["filesystem"]


@pytest.mark.asyncio
async def test_get_popular(registry_client):
    popular = await registry_client.get_popular(limit=2)

    assert [m.id for m in popular] == ["github", "filesystem"]


@pytest.mark.asyncio
async def test_get_recent_undated_last(registry_client):
    recent = await registry_client.get_recent()

    assert [m.id for m in recent] == ["github", "filesystem", "postgres"]


@pytest.mark.asyncio
async def test_get_categories(registry_client):
    assert await registry_client.get_categories() == ["database", "files", "git", "io", "sql", "vcs"]


@pytest.mark.asyncio
async def test_server_error_raises_catalog_error():
    client = RegistryClient("https://registry.test", transport=httpx.MockTransport(lambda r: httpx.Response(503)))

    with pytest.raises(CatalogError, match="HTTP 503"):
        await client.get_index()


@pytest.mark.asyncio
async def test_missing_index_is_catalog_error():
    client = RegistryClient("https://registry.test", transport=httpx.MockTransport(lambda r: httpx.Response(404)))

    with pytest.raises(CatalogError, match="Registry index not found") as exc_info:
        await client.get_index()

    assert not isinstance(exc_info.value, ServerNotFoundError)


@pytest.mark.asyncio
async def test_invalid_json_raises_catalog_error():
    client = RegistryClient(
        "https://registry.test", transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>"))
    )

    with pytest.raises(CatalogError, match="Invalid JSON"):
        await client.get_index()


@pytest.mark.asyncio
async def test_invalid_manifest_raises_catalog_error():
    client = RegistryClient(
        "https://registry.test", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"id": "x"}))
    )

    with pytest.raises(CatalogError, match="Invalid manifest for server 'x'"):
        await client.get_manifest("x")


@pytest.mark.asyncio
async def test_connection_error_raises_catalog_error():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = RegistryClient("https://registry.test", transport=httpx.MockTransport(refuse))

    with pytest.raises(CatalogError, match="connection refused"):
        await client.get_index()


@pytest.mark.asyncio
async def test_base_url_with_path():
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"servers": []})

    client = RegistryClient("https://cdn.test/registry/", transport=httpx.MockTransport(handler))
    await client.get_index()

    assert seen == ["https://cdn.test/registry/index.json"]
