"""Fetch tool for HTTP requests."""

from typing import Any

import httpx

from hummingbird.config import get_config
from hummingbird.logging import get_logger
from hummingbird.types import ToolDefinition

log = get_logger(__name__)

FETCH_INPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "url": {"type": "string", "description": "URL to fetch"},
        "method": {"type": "string", "description": "HTTP method", "default": "GET"},
        "headers": {"type": "object", "description": "HTTP headers"},
        "body": {"type": "string", "description": "Request body"},
    },
    "required": ["url"],
}


def create_fetch_tool(
    client: httpx.AsyncClient | None = None,
    max_chars: int | None = None,
) -> ToolDefinition:
    """Create the ``Fetch`` tool.

    Args:
        client: Optional caller-owned HTTP client; without one, each request
            opens and closes its own client
        max_chars: Response body limit (defaults to ``tools.fetch_max_chars``)

    Returns:
        ToolDefinition with an httpx-backed handler
    """
    cfg = get_config()
    limit = max(1, int(max_chars if max_chars is not None else cfg.tools.fetch_max_chars))

    async def request(http: httpx.AsyncClient, url: str, method: str, args: dict[str, Any]) -> dict[str, Any]:
        response = await http.request(
            method,
            url,
            headers=args.get("headers"),
            content=args.get("body"),
        )
        content = response.text
        if len(content) > limit:
            content = content[:limit] + "\n... [truncated]"
        return {
            "content": content,
            "status": response.status_code,
            "ok": response.is_success,
        }

    async def handler(args: dict[str, Any]) -> dict[str, Any]:
        url = args["url"]
        method = str(args.get("method") or "GET").upper()
        try:
            log.info("Fetching URL", url=url, method=method)
            if client is not None:
                return await request(client, url, method, args)
            # Owned clients live for one request and are always closed.
            async with httpx.AsyncClient(
                timeout=cfg.tools.fetch_timeout,
                follow_redirects=True,
                headers={"User-Agent": "Hummingbird/0.1.0 (Fetch Tool)"},
            ) as owned:
                return await request(owned, url, method, args)
        except httpx.HTTPError as e:
            log.error("HTTP fetch failed", url=url, error=str(e))
            return {"error": f"HTTP error: {e}"}

    return ToolDefinition(
        name="Fetch",
        description="Make HTTP requests",
        input_schema=FETCH_INPUT_SCHEMA,
        handler=handler,
        runtime="builtin",
    )
