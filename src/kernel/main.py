"""FastAPI application entry point for the plugin kernel.

Exposes the GitHub webhook endpoint along with health and metrics
endpoints. Configuration is read once at startup; the per-request
configuration handed to the webhook handler is validated on every
delivery.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST

from src.kernel.config import KernelSettings, get_settings
from src.kernel.metrics import get_metrics
from src.kernel.storage import InMemoryKeyValueStore, KeyValueStore, PostgresKeyValueStore
from src.kernel.worker import handle_webhook

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _redact_secret(value: Optional[str], visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters."""
    if value is None:
        return "<unset>"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: KernelSettings) -> None:
    """Log configuration values with secrets redacted."""
    logger.info("Kernel configuration:")
    logger.info(f"  GitHub Base URL: {settings.github_base_url}")
    logger.info(f"  App ID: {settings.app_id or '<unset>'}")
    logger.info(f"  Webhook Secret: {_redact_secret(settings.webhook_secret)}")
    logger.info(f"  App Private Key: {_redact_secret(settings.app_private_key, 0)}")
    logger.info(
        f"  Database URL: {_redact_secret(settings.database_url)}"
        if settings.database_url
        else "  Plugin chain state: in-memory"
    )
    logger.info(f"  Log Level: {settings.log_level}")


async def _create_store(settings: KernelSettings) -> KeyValueStore:
    if settings.database_url:
        store = PostgresKeyValueStore(settings.database_url)
        await store.connect()
        return store
    logger.warning("No database configured, plugin chain state is kept in memory")
    return InMemoryKeyValueStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load settings and open the plugin chain state store."""
    logger.info("Kernel starting up...")

    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level)
    _log_configuration(settings)

    store = await _create_store(settings)
    app.state.settings = settings
    app.state.plugin_chain_state = store

    logger.info("Kernel started successfully")

    yield

    logger.info("Kernel shutting down...")
    if isinstance(store, PostgresKeyValueStore):
        await store.disconnect()
    logger.info("Kernel shutdown complete")


def get_env(request: Request) -> Dict[str, Any]:
    """Per-request configuration built from the startup settings."""
    settings: KernelSettings = request.app.state.settings
    return settings.to_env(request.app.state.plugin_chain_state)


app = FastAPI(
    title="Plugin Kernel",
    description="GitHub webhook entry point dispatching events to plugin chains",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health():
    """Liveness probe endpoint."""
    return {"status": "healthy"}


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=get_metrics().generate(), media_type=CONTENT_TYPE_LATEST)


@app.post("/")
async def github_webhook(request: Request, env: Dict[str, Any] = Depends(get_env)):
    """GitHub webhook receiver endpoint.

    Verifies the delivery's signature and dispatches it to the kernel's
    handlers. Answers ``ok`` once every handler has completed.
    """
    return await handle_webhook(request, env, metrics=get_metrics())


if __name__ == "__main__":
    import uvicorn

    dev_settings = get_settings()
    uvicorn.run(
        "src.kernel.main:app",
        host=dev_settings.host,
        port=dev_settings.port,
        reload=True,
    )
