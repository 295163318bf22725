"""Test the HTTP endpoints."""

from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import make_image
from plex_slack_webhook.geolocation import GeoLocator
from plex_slack_webhook.image_cache import ImageCache, cache_key
from plex_slack_webhook.main import app, app_state
from plex_slack_webhook.notifier import SlackNotifier
from plex_slack_webhook.plex_slack_webhook import EventRouter
from plex_slack_webhook.thumbnails import resize_thumbnail

KEY = cache_key("server-1", "42")


@pytest.fixture()
def notifier_mock():
    mock = AsyncMock(spec=SlackNotifier)
    mock.send = AsyncMock(return_value=True)
    return mock


@pytest.fixture()
def client(fake_redis, notifier_mock):
    """Run the app with an in-memory cache and mocked outbound services."""
    with TestClient(app) as test_client:
        geolocator = AsyncMock(spec=GeoLocator)
        geolocator.locate = AsyncMock(return_value=None)
        app_state["router"] = EventRouter(
            cache=ImageCache(fake_redis),
            geolocator=geolocator,
            notifier=notifier_mock,
            http_client=AsyncMock(spec=httpx.AsyncClient),
            base_url="http://plex-slack.test",
        )
        yield test_client


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_scrobble_accepted(client, payload_json, notifier_mock):
    """Test that a valid event gets a 200 and is announced."""
    response = client.post("/", data={"payload": payload_json(event="media.scrobble")})

    assert response.status_code == 200
    assert response.json() == {"message": "Webhook received"}
    notifier_mock.send.assert_awaited_once()


@pytest.mark.parametrize(
    "overrides",
    [
        {"media_type": "photo"},
        {"event": "media.pause"},
        {"Metadata": None},
    ],
)
def test_invalid_events_rejected(client, payload_json, notifier_mock, fake_redis, overrides):
    """Test that rejected events return 400 with no side effects."""
    response = client.post("/", data={"payload": payload_json(**overrides)})

    assert response.status_code == 400
    assert response.headers["content-type"].startswith("text/plain")
    notifier_mock.send.assert_not_called()
    assert fake_redis.set_calls == []


def test_invalid_json_rejected(client):
    response = client.post("/", data={"payload": "{not json"})

    assert response.status_code == 400
    assert response.text == "Invalid JSON payload"


def test_missing_payload_rejected(client):
    assert client.post("/", data={}).status_code == 400


def test_play_upload_is_served_back(client, payload_json, notifier_mock):
    """Test that an uploaded thumbnail is cached on play and served from /images."""
    raw = make_image(size=(120, 80))

    response = client.post(
        "/",
        data={"payload": payload_json(event="media.play")},
        files={"thumb": ("thumb.png", raw, "image/png")},
    )
    assert response.status_code == 200
    notifier_mock.send.assert_not_called()

    image = client.get(f"/images/{KEY}")
    assert image.status_code == 200
    assert image.headers["content-type"] == "image/jpeg"
    assert image.content == resize_thumbnail(raw)


def test_rate_links_cached_image(client, payload_json, notifier_mock):
    """Test that a rating after a play links the cached thumbnail."""
    client.post(
        "/",
        data={"payload": payload_json(event="media.play")},
        files={"thumb": ("thumb.png", make_image(), "image/png")},
    )

    client.post("/", data={"payload": payload_json(event="media.rate", rating=10)})

    notification = notifier_mock.send.await_args.args[0]
    assert notification.image_url == f"http://plex-slack.test/images/{KEY}"
    assert notification.footer.startswith("rated :star::star::star::star::star: by alice")


def test_stored_png_is_served_as_jpeg(client, fake_redis):
    """Test that non-JPEG bytes in the cache are re-encoded."""
    fake_redis.data["pngkey"] = (make_image(), None)

    response = client.get("/images/pngkey")

    assert response.status_code == 200
    assert response.content.startswith(b"\xff\xd8\xff")


def test_unknown_image_is_404(client):
    response = client.get("/images/0123456789abcdef")

    assert response.status_code == 404
    assert response.text == "Not Found"


def test_unknown_route_is_404(client):
    response = client.get("/nowhere")

    assert response.status_code == 404
    assert response.text == "Not Found"
