"""Shared fixtures: a recording command runner, a manifest factory and a fake registry."""

from pathlib import Path

import httpx
import pytest
from mcp_registry import CommandResult
from mcp_registry import RegistryClient
from mcp_registry import ServerManifest


class FakeRunner:
    """Records commands instead of spawning processes.

    ``failures`` maps a program name (``npm``, ``git``...) to the stderr it
    should fail with. ``git clone`` drops a marker file so clones look real.
    """

    def __init__(self, failures: dict[str, str] | None = None, missing: set[str] | None = None):
        self.failures = failures or {}
        self.missing = missing or set()
        self.calls: list[tuple[list[str], Path]] = []

    @property
    def commands(self) -> list[list[str]]:
        return [command for command, _ in self.calls]

    async def run(self, command: list[str], cwd: Path) -> CommandResult:
        self.calls.append((command, cwd))
        program = Path(command[0]).name

        if program in self.missing:
            raise FileNotFoundError(f"No such file or directory: '{program}'")
        if program in self.failures:
            return CommandResult(command=command, returncode=1, stderr=self.failures[program])
        if command[:2] == ["git", "clone"]:
            (cwd / "README.md").write_text("cloned")
        return CommandResult(command=command, returncode=0, stdout="ok")


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_manifest():
    """Build a ServerManifest; keyword args are camelCase installation hints.

    Node manifests get an npm package hint unless hints are given or ``bare`` is set.
    """

    def _make(
        server_id: str = "alpha",
        version: str = "1.0.0",
        runtime: str = "node",
        entry: str = "index.js",
        bare: bool = False,
        **installation: str,
    ) -> ServerManifest:
        if not installation and runtime == "node" and not bare:
            installation = {"npmPackage": f"{server_id}-pkg"}
        return ServerManifest.model_validate(
            {
                "id": server_id,
                "name": f"Server {server_id}",
                "description": f"Description for {server_id}",
                "version": version,
                "author": {"name": "Test Author"},
                "license": "MIT",
                "keywords": ["test", server_id],
                "mcpVersion": "1.0",
                "runtime": {"type": runtime, "entry": entry},
                "installation": installation,
                "capabilities": [],
            }
        )

    return _make


def _manifest_json(server_id: str, downloads: int, keywords: list[str], last_updated: str | None) -> dict:
    stats = {"downloads": downloads, "rating": 4.0, "reviewCount": 1}
    if last_updated:
        stats["lastUpdated"] = last_updated
    return {
        "id": server_id,
        "name": server_id.title(),
        "description": f"The {server_id} server",
        "version": "1.0.0",
        "author": {"name": "Registry Author"},
        "license": "MIT",
        "keywords": keywords,
        "mcpVersion": "1.0",
        "runtime": {"type": "node", "entry": "index.js", "env": ["API_TOKEN"] if server_id == "github" else []},
        "installation": {"npmPackage": f"@mcp/{server_id}"},
        "capabilities": [{"type": "tool", "name": f"{server_id}_tool", "description": "Does things"}],
        "stats": stats,
    }


REGISTRY_MANIFESTS = {
    "filesystem": _manifest_json("filesystem", 500, ["files", "io"], "2025-03-01T00:00:00Z"),
    "github": _manifest_json("github", 900, ["git", "vcs"], "2025-06-01T00:00:00Z"),
    "postgres": _manifest_json("postgres", 100, ["database", "sql"], None),
}


def registry_index() -> dict:
    return {
        "version": "1.0",
        "lastUpdated": "2025-06-01",
        "totalServers": len(REGISTRY_MANIFESTS),
        "servers": [
            {
                "id": m["id"],
                "version": m["version"],
                "description": m["description"],
                "author": m["author"]["name"],
                "keywords": m["keywords"],
                "downloads": m["stats"]["downloads"],
                "rating": m["stats"]["rating"],
                "manifestPath": f"servers/{m['id']}/manifest.json",
            }
            for m in REGISTRY_MANIFESTS.values()
        ],
    }


def registry_handler(request: httpx.Request) -> httpx.Response:
    """Serve the static registry above under any host."""
    path = request.url.path
    if path == "/index.json":
        return httpx.Response(200, json=registry_index())
    parts = path.strip("/").split("/")
    if len(parts) == 3 and parts[0] == "servers" and parts[2] == "manifest.json" and parts[1] in REGISTRY_MANIFESTS:
        return httpx.Response(200, json=REGISTRY_MANIFESTS[parts[1]])
    return httpx.Response(404, json={"error": "not found"})


@pytest.fixture
def registry_client() -> RegistryClient:
    return RegistryClient("https://registry.test", transport=httpx.MockTransport(registry_handler))
