"""Resolve a player's public address to an approximate location."""

import ipaddress
import logging

import httpx

from .exceptions import UpstreamFetchError
from .models import GeoLocation

logger = logging.getLogger(__name__)

IPSTACK_URL = "http://api.ipstack.com/{ip}"


class GeoLocator:
    """Best-effort IP geolocation backed by ipstack."""

    def __init__(self, client: httpx.AsyncClient, access_key: str | None) -> None:
        """Initialize the locator with a shared HTTP client."""
        self.client = client
        self.access_key = access_key

    async def locate(self, ip: str | None) -> GeoLocation | None:
        """Look up ip. Any failure, including an unroutable address, gives None."""
        if not ip or not self.access_key:
            return None

        try:
            address = ipaddress.ip_address(ip)
        except ValueError:
            logger.debug("Not an IP address, skipping geolocation: %s", ip)
            return None
        if not address.is_global:
            logger.debug("Private address, skipping geolocation: %s", ip)
            return None

        try:
            data = await self._lookup(str(address))
        except UpstreamFetchError as e:
            logger.warning("%s", e)
            return None

        return self._to_location(data)

    async def _lookup(self, ip: str) -> dict:
        try:
            response = await self.client.get(IPSTACK_URL.format(ip=ip), params={"access_key": self.access_key})
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            msg = f"Geolocation lookup for {ip} failed: {e}"
            raise UpstreamFetchError(msg) from e

        # ipstack reports errors with a 200 and a success flag
        if not isinstance(data, dict) or data.get("success") is False:
            error = data.get("error") if isinstance(data, dict) else data
            msg = f"Geolocation lookup for {ip} rejected: {error}"
            raise UpstreamFetchError(msg)
        return data

    @staticmethod
    def _to_location(data: dict) -> GeoLocation:
        country_code = data.get("country_code")
        # Region names only disambiguate well inside the US
        region = data.get("region_name") if country_code == "US" else data.get("country_name")
        return GeoLocation(city=data.get("city"), region=region, country_code=country_code)
