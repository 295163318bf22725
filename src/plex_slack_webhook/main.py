"""Define fastAPI endpoints."""

import asyncio
import json
import logging.config
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import httpx
import pydantic
from fastapi import BackgroundTasks, FastAPI, File, Form, HTTPException, UploadFile, status
from fastapi.responses import Response

from .config import EVENT_PLAY, settings
from .exceptions import EXCEPTION_HANDLERS, InvalidPayload
from .geolocation import GeoLocator
from .image_cache import ImageCache
from .models import PlexWebhookPayload
from .notifier import SlackNotifier
from .plex_slack_webhook import EventRouter, parse_event
from .thumbnails import ensure_jpeg

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

# Global instances (managed by lifespan context)
app_state: dict[str, Any] = {}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:  # noqa: ARG001
    """Manage application startup and shutdown logic."""
    logger.info("Application startup")
    http_client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
    cache = ImageCache.from_url(settings.REDIS_URL, timeout_seconds=settings.REDIS_TIMEOUT_SECONDS)
    app_state["http_client"] = http_client
    app_state["image_cache"] = cache
    app_state["router"] = EventRouter(
        cache=cache,
        geolocator=GeoLocator(http_client, settings.IPSTACK_KEY),
        notifier=SlackNotifier(http_client, settings.SLACK_URL, settings.SLACK_CHANNEL),
        http_client=http_client,
    )
    logger.info("Accepting events: %s", ", ".join(settings.event_whitelist))
    yield
    logger.info("Application shutdown")
    router = app_state.pop("router", None)
    if router:
        await router.shutdown(reason="Application shutdown")
    await http_client.aclose()
    await cache.close()
    app_state.clear()
    logger.info("Cleanup complete.")


app = FastAPI(lifespan=lifespan, title="Plex Slack Webhook")

for exc_class, handler in EXCEPTION_HANDLERS.items():
    app.add_exception_handler(exc_class, handler)


def _get_router() -> EventRouter:
    router = app_state.get("router")
    if not router:
        logger.error("Event router not initialized.")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
    return router


@app.post("/")
async def plex_webhook_endpoint(
    background_tasks: BackgroundTasks,
    payload: str = Form(...),
    thumb: UploadFile | None = File(None),
) -> dict[str, str]:
    """Receives webhooks from Plex Media Server."""
    router = _get_router()

    try:
        data = json.loads(payload)
        parsed_payload = PlexWebhookPayload.model_validate(data)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload") from e
    except (pydantic.ValidationError, TypeError, ValueError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload structure") from e

    if parsed_payload.event == EVENT_PLAY:
        logger.debug("Received webhook payload: %s", data)

    thumbnail_bytes = await thumb.read() if thumb else None
    try:
        event = parse_event(parsed_payload, settings.event_whitelist, thumbnail_bytes)
    except InvalidPayload as e:
        logger.info("Rejected webhook: %s", e)
        raise

    # Caching and notifying happen after the response; their failures never reach Plex
    background_tasks.add_task(router.handle_event, event)
    return {"message": "Webhook received"}


@app.get("/images/{key}")
async def image_endpoint(key: str) -> Response:
    """Serve a cached thumbnail as JPEG."""
    cache = _get_router().cache
    if not await cache.exists(key):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    data = await cache.get(key)
    if not data:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Cached image is empty")

    image = await asyncio.to_thread(ensure_jpeg, data)
    return Response(content=image, media_type="image/jpeg")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Check health."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Uvicorn server...")
    uvicorn.run(app, host="::", port=settings.APP_PORT)
