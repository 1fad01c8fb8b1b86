"""Server entry point — ``python -m hra.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

import uvicorn
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware

from hra.core.config.settings import Settings, get_settings
from hra.core.server.app import create_app
from hra.core.server.middleware import RequestLoggingMiddleware


def _is_loopback_host(host: str) -> bool:
    if host in {"localhost"}:
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def build_http_app(settings: Settings):
    """Build the Starlette app: MCP endpoint at /mcp plus the JSON API under /api."""
    mcp = create_app(settings_override=settings)
    return mcp.http_app(
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=settings.cors_origin_list,
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["*"],
            ),
            Middleware(RequestLoggingMiddleware),
        ],
    )


def run() -> None:
    """Start the server with Streamable HTTP transport and the JSON API."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.hra_log_level.upper(), logging.INFO))

    logger = logging.getLogger(__name__)
    if not settings.hra_allow_insecure_bind and not _is_loopback_host(settings.hra_host):
        raise RuntimeError(
            "Refusing to bind the analysis server to a non-loopback host without an auth layer. "
            "Set HRA_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting Health Risk Analysis server on %s:%d",
        settings.hra_host,
        settings.hra_port,
    )

    uvicorn.run(
        build_http_app(settings),
        host=settings.hra_host,
        port=settings.hra_port,
        log_level=settings.hra_log_level.lower(),
    )


if __name__ == "__main__":
    run()
