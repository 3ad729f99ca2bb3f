from fastapi import HTTPException, status, Request

from .connector import McpConnector


def get_connector(request: Request) -> McpConnector:
    connector = getattr(request.app.state, "connector", None)
    if connector is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="MCP connector not initialized",
        )
    return connector
