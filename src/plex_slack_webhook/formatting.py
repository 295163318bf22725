"""Format notification text from Plex metadata."""

from .models import Event, GeoLocation, MediaType, Notification, PlexMetadata

STAR = ":star:"
UNKNOWN_ACCOUNT = "someone"


def format_title(metadata: PlexMetadata) -> str:
    """Use the show or artist name, otherwise the item title with its year. A year alone is not a title."""
    if metadata.grandparentTitle:
        return metadata.grandparentTitle

    title = metadata.title or ""
    if title and metadata.year:
        title += f" ({metadata.year})"
    return title


def format_subtitle(metadata: PlexMetadata) -> str:
    """Describe the item beneath the title, followed by its summary."""
    subtitle = ""

    if metadata.grandparentTitle:
        if metadata.type == MediaType.TRACK.value:
            subtitle = metadata.parentTitle or ""
        elif metadata.parentIndex is not None and metadata.index is not None:
            subtitle = f"S{metadata.parentIndex} E{metadata.index}"
        elif metadata.originallyAvailableAt:
            subtitle = metadata.originallyAvailableAt

        if metadata.title:
            subtitle = f"{subtitle} - {metadata.title}" if subtitle else metadata.title
    elif metadata.type == MediaType.MOVIE.value:
        subtitle = metadata.tagline or ""

    if metadata.summary:
        subtitle = f"{subtitle}\n{metadata.summary}" if subtitle else metadata.summary

    return subtitle


def rating_action(rating: float | None) -> str:
    """Render a 0-10 rating as stars, one per two points."""
    if rating and rating > 0:
        return "rated " + STAR * (int(rating) // 2)
    return "unrated"


def location_text(geo: GeoLocation | None) -> str:
    if geo and geo.region:
        return f"near {geo.city}, {geo.region}" if geo.city else f"near {geo.region}"
    return ""


def format_footer(
    action: str,
    account_title: str | None,
    player_title: str | None = None,
    server_title: str | None = None,
    location: str = "",
) -> str:
    """Compose '<action> by <account> on <player> from <server> <location>', skipping missing parts."""
    footer = f"{action} by {account_title or UNKNOWN_ACCOUNT}"
    if player_title:
        footer += f" on {player_title}"
    if server_title:
        footer += f" from {server_title}"
    if location:
        footer += f" {location}"
    return footer


def event_action(event: Event) -> str:
    """Return the verb used in the footer for an event that notifies."""
    if event.is_scrobble:
        return "played"
    if event.is_rate:
        return rating_action(event.rating)
    if event.is_new:
        return "added"
    msg = f"Event {event.name} does not produce a notification"
    raise ValueError(msg)


def build_notification(
    event: Event, action: str, image_url: str | None = None, geo: GeoLocation | None = None
) -> Notification:
    """Assemble the full notification for an event."""
    return Notification(
        title=format_title(event.metadata),
        text=format_subtitle(event.metadata),
        footer=format_footer(
            action,
            event.account_title,
            player_title=event.player_title,
            server_title=event.server_title,
            location=location_text(geo),
        ),
        image_url=image_url,
        footer_icon=event.account_thumb_url,
    )
