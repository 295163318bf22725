"""Cache Plex thumbnails and announce Plex activity on Slack."""

import asyncio
import hashlib
import logging
from contextlib import suppress

import httpx

from .config import settings
from .exceptions import ImageDecodeError, InvalidPayload
from .formatting import build_notification, event_action
from .geolocation import GeoLocator
from .image_cache import ImageCache, cache_key
from .models import Event, EventKind, MediaType, PlexWebhookPayload
from .notifier import SlackNotifier
from .thumbnails import fetch_remote_image, resize_thumbnail

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


def parse_event(
    payload: PlexWebhookPayload, whitelist: list[str], thumbnail_bytes: bytes | None = None
) -> Event:
    """Validate a webhook payload and build the typed event from it."""
    metadata = payload.Metadata
    if not metadata:
        msg = "Missing Metadata"
        raise InvalidPayload(msg)

    try:
        media_type = MediaType(metadata.type)
    except ValueError as e:
        msg = f"Unsupported media type: {metadata.type}"
        raise InvalidPayload(msg) from e

    if payload.event not in whitelist:
        msg = f"Event not accepted: {payload.event}"
        raise InvalidPayload(msg)

    server = payload.Server
    player = payload.Player
    account = payload.Account
    return Event(
        name=payload.event,
        kind=EventKind.from_event_name(payload.event),
        media_type=media_type,
        cache_key=cache_key(server.uuid if server else None, metadata.ratingKey),
        metadata=metadata,
        rating=payload.rating,
        player_address=player.publicAddress if player else None,
        player_title=player.title if player else None,
        server_title=server.title if server else None,
        account_title=account.title if account else None,
        account_thumb_url=account.thumb if account else None,
        thumbnail_bytes=thumbnail_bytes or None,
        thumbnail_url=payload.thumb,
    )


class EventRouter:
    """Decide, per event, whether to cache a thumbnail and whether to notify Slack."""

    def __init__(
        self,
        cache: ImageCache,
        geolocator: GeoLocator,
        notifier: SlackNotifier,
        http_client: httpx.AsyncClient,
        base_url: str | None = None,
        image_ttl_seconds: int | None = None,
    ) -> None:
        """Initialize the router with its collaborators."""
        self.cache = cache
        self.geolocator = geolocator
        self.notifier = notifier
        self.http_client = http_client
        self.base_url = (base_url or settings.base_url).rstrip("/")
        self.image_ttl_seconds = image_ttl_seconds or settings.IMAGE_TTL_SECONDS
        # One thumbnail derivation per key and image source at a time within this process
        self._inflight: dict[tuple[str, str], asyncio.Task[bytes | None]] = {}

    def image_url(self, key: str) -> str:
        return f"{self.base_url}/images/{key}"

    async def handle_event(self, event: Event) -> None:
        """Run the cache and notify steps for a validated event. Never raises for enrichment failures."""
        logger.debug("Processing webhook event: %s (%s)", event.name, event.cache_key)

        image: bytes | None = None
        if event.should_cache:
            image = await self._cached_or_derived(event)
        elif event.should_notify:
            image = await self.cache.get(event.cache_key)

        if not event.should_notify:
            logger.debug("No notification for %s on %s", event.name, event.media_type.value)
            return

        await self._notify(event, image)

    async def _cached_or_derived(self, event: Event) -> bytes | None:
        key = event.cache_key
        image = await self.cache.get(key)
        if image:
            logger.info("[REDIS] Using cached image %s", key)
            return image

        # Only events with the same image source can share a derivation
        inflight_key = (key, self._image_source(event))
        task = self._inflight.get(inflight_key)
        if task is None:
            task = asyncio.create_task(self._derive_and_store(event))
            self._inflight[inflight_key] = task
            task.add_done_callback(lambda _: self._inflight.pop(inflight_key, None))
        else:
            logger.debug("Waiting on in-flight thumbnail for %s", key)
        return await asyncio.shield(task)

    @staticmethod
    def _image_source(event: Event) -> str:
        if event.thumbnail_bytes:
            return "upload:" + hashlib.sha1(event.thumbnail_bytes).hexdigest()  # noqa: S324
        if event.thumbnail_url:
            return "url:" + event.thumbnail_url
        return ""

    async def _derive_and_store(self, event: Event) -> bytes | None:
        raw = await self._raw_image(event)
        if not raw:
            logger.debug("No image available for %s", event.cache_key)
            return None

        try:
            # Pillow work is CPU bound, keep it off the event loop
            image = await asyncio.to_thread(resize_thumbnail, raw)
        except ImageDecodeError as e:
            logger.warning("Skipping image for %s: %s", event.cache_key, e)
            return None

        logger.info("[REDIS] Saving new image %s", event.cache_key)
        await self.cache.put(event.cache_key, image, self.image_ttl_seconds)
        return image

    async def _raw_image(self, event: Event) -> bytes | None:
        if event.thumbnail_bytes:
            return event.thumbnail_bytes
        if event.thumbnail_url:
            return await fetch_remote_image(self.http_client, event.thumbnail_url)
        return None

    async def _notify(self, event: Event, image: bytes | None) -> None:
        location = await self.geolocator.locate(event.player_address)
        action = event_action(event)

        image_url = self.image_url(event.cache_key) if image else None
        if image_url:
            logger.info("[SLACK] Sending %s with image", event.cache_key)
        else:
            logger.info("[SLACK] Sending %s without image", event.cache_key)

        notification = build_notification(event, action, image_url=image_url, geo=location)
        await self.notifier.send(notification)

    async def shutdown(self, reason: str) -> None:
        """Gracefully stop any thumbnail derivations still running."""
        tasks = [task for task in self._inflight.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            logger.info("Cancelled %d in-flight thumbnail task(s). Reason: %s", len(tasks), reason)
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        self._inflight.clear()
