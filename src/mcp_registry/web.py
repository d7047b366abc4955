"""HTTP API for browsing the registry (and, optionally, local installs)."""

import logging

import uvicorn
from fastapi import FastAPI
from fastapi import HTTPException
from fastapi import Query
from fastapi import Request
from fastapi.responses import JSONResponse

from . import __version__
from .catalog import RegistryClient
from .exceptions import CatalogError
from .exceptions import NotInstalledError
from .exceptions import RegistryError
from .exceptions import ServerNotFoundError
from .installer import InstallationManager

logger = logging.getLogger(__name__)

ENDPOINTS = [
    "GET /api/servers",
    "GET /api/servers/popular",
    "GET /api/servers/recent",
    "GET /api/servers/{id}",
    "GET /api/search?q=query",
    "GET /api/categories",
]


def _status_for(error: RegistryError) -> int:
    if isinstance(error, ServerNotFoundError | NotInstalledError):
        return 404
    if isinstance(error, CatalogError):
        return 502
    return 500


def create_app(client: RegistryClient, manager: InstallationManager | None = None) -> FastAPI:
    """
    Build the API app.

    Args:
        client: Catalog client the routes read from
        manager: When given, ``/api/installed`` routes expose the local ledger

    Returns:
        FastAPI application
    """
    app = FastAPI(title="MCP Server Registry", version=__version__)

    @app.exception_handler(RegistryError)
    async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
        status = _status_for(exc)
        if status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=status, content={"error": exc.message})

    @app.get("/")
    async def api_info() -> dict:
        endpoints = list(ENDPOINTS)
        if manager is not None:
            endpoints += ["GET /api/installed", "GET /api/installed/{id}"]
        return {
            "name": "MCP Server Registry",
            "version": __version__,
            "api": {"version": "v1", "endpoints": endpoints},
        }

    @app.get("/api/servers")
    async def list_servers(
        page: int = Query(1, ge=1),
        limit: int | None = Query(None, ge=1),
        page_size: int | None = Query(None, alias="pageSize", ge=1),
    ) -> dict:
        result = await client.list_servers(page=page, page_size=limit or page_size or 20)
        return result.model_dump(by_alias=True, exclude_none=True)

    # Declared before /api/servers/{server_id} so the literal paths win
    @app.get("/api/servers/popular")
    async def popular_servers(limit: int = Query(10, ge=1)) -> dict:
        servers = await client.get_popular(limit)
        return {"servers": [s.model_dump(by_alias=True, exclude_none=True) for s in servers]}

    @app.get("/api/servers/recent")
    async def recent_servers(limit: int = Query(10, ge=1)) -> dict:
        servers = await client.get_recent(limit)
        return {"servers": [s.model_dump(by_alias=True, exclude_none=True) for s in servers]}

    @app.get("/api/servers/{server_id}")
    async def get_server(server_id: str) -> dict:
        server = await client.get_server(server_id)
        if server is None:
            raise HTTPException(status_code=404, detail=f"Server '{server_id}' not found")
        return server.model_dump(by_alias=True, exclude_none=True)

    @app.get("/api/search")
    async def search(
        q: str = "",
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1),
    ) -> dict:
        if not q.strip():
            raise HTTPException(status_code=400, detail='Query parameter "q" is required')
        result = await client.search(q, page=page, page_size=limit)
        return result.model_dump(by_alias=True, exclude_none=True)

    @app.get("/api/categories")
    async def categories() -> dict:
        return {"categories": await client.get_categories()}

    if manager is not None:

        @app.get("/api/installed")
        async def list_installed() -> dict:
            return {"servers": [record.to_dict() for record in manager.list_installed()]}

        @app.get("/api/installed/{server_id}")
        async def get_installed(server_id: str) -> dict:
            record = manager.get_installed(server_id)
            if record is None:
                raise NotInstalledError(f"Server {server_id} is not installed.", context={"server_id": server_id})
            return {**record.to_dict(), "runCommand": manager.get_run_command(server_id)}

    return app


def serve(app: FastAPI, host: str = "localhost", port: int = 3000) -> None:
    """Run the API with uvicorn (blocks until interrupted)."""
    logger.info(f"MCP Registry server running at http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)
