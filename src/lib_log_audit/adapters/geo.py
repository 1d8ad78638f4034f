"""Geolocation resolver backed by MaxMind GeoIP2.

Purpose
-------
Map a client IP address to the :class:`GeoLocation` value object using a
local GeoIP2/GeoLite2 City database or the GeoIP2 web service.

Contents
--------
* :class:`GeoIP2Resolver` – implementation of :class:`GeoResolverPort`.

System Role
-----------
Optional enricher. Lookup failures surface as :class:`GeoResolutionError`; the
record assembler logs them and leaves ``location`` unset. Addresses absent
from the database (private ranges, loopback) resolve to ``None``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

import geoip2.database
import geoip2.errors

from lib_log_audit.application.ports.geo import GeoResolutionError, GeoResolverPort
from lib_log_audit.domain.records import Country, District, Geo, GeoLocation

logger = logging.getLogger(__name__)


class _CityLookup(Protocol):
    def city(self, ip_address: str) -> Any: ...


class GeoIP2Resolver(GeoResolverPort):
    """Resolve addresses through any object exposing ``city(ip)``.

    Parameters
    ----------
    reader:
        ``geoip2.database.Reader`` or ``geoip2.webservice.Client``.
    locale:
        Preferred language for ``name`` fields; English names populate the
        ``full_name`` fields.
    """

    def __init__(self, reader: _CityLookup, *, locale: str = "en") -> None:
        self._reader = reader
        self._locale = locale

    @classmethod
    def from_database(cls, path: str | Path, *, locale: str = "en") -> "GeoIP2Resolver":
        """Open a MaxMind ``.mmdb`` database."""

        database = Path(path)
        if not database.is_file():
            raise GeoResolutionError(f"GeoIP database not found: {database}")
        return cls(geoip2.database.Reader(str(database), locales=[locale, "en"]), locale=locale)

    def resolve(self, ip: str) -> GeoLocation | None:
        try:
            response = self._reader.city(ip)
        except geoip2.errors.AddressNotFoundError:
            logger.debug("No location for %s", ip)
            return None
        except (geoip2.errors.GeoIP2Error, ValueError, OSError) as exc:
            raise GeoResolutionError(f"GeoIP lookup for {ip} failed: {exc}") from exc
        if response is None:
            return None
        return self._to_location(response)

    def _to_location(self, response: Any) -> GeoLocation:
        geo = None
        longitude = response.location.longitude
        latitude = response.location.latitude
        if longitude is not None and latitude is not None:
            geo = Geo(longitude=longitude, latitude=latitude)

        country = Country(
            code=response.country.iso_code,
            name=self._localised(response.country.names) or response.country.name,
            full_name=response.country.names.get("en") or response.country.name,
        )

        subdivision = response.subdivisions.most_specific
        city = response.city
        district_name = self._localised(city.names) or self._localised(subdivision.names)
        parts = [
            part
            for part in (country.full_name, subdivision.names.get("en"), city.names.get("en"))
            if part
        ]
        district = District(name=district_name, full_name=" ".join(parts) or None)
        return GeoLocation(geo=geo, country=country, district=district)

    def _localised(self, names: dict[str, str]) -> str | None:
        return names.get(self._locale) or names.get("en")

    def close(self) -> None:
        """Release the underlying database handle or HTTP session."""

        close = getattr(self._reader, "close", None)
        if callable(close):
            close()


__all__ = ["GeoIP2Resolver"]
