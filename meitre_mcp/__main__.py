import uvicorn

from meitre_mcp.server import initialize

if __name__ == "__main__":  # pragma: no cover
    app = initialize()

    from meitre_mcp.config import get_settings

    settings = get_settings()

    uvicorn.run(
        app,
        host=settings.mcp_host,
        port=settings.mcp_port,
        log_level=settings.log_level.lower(),
    )
