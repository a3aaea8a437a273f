"""City directory with database-first lookup, falling back to a city sheet on disk."""

from __future__ import annotations

import csv
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Protocol

from openpyxl import load_workbook

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import City
from ..models.errors import DirectoryUnavailable
from ..services.geospatial import bounding_box, within_radius
from ..services.naming import name_search_pattern, normalize_city_name

logger = logging.getLogger(__name__)

CITY_TABLE = "cities"
CITY_COLUMNS = "city, state_or_province, zip, latitude, longitude, kma_code, kma_name, here_verified"
REQUIRED_COLUMNS = {"city", "state_or_province", "latitude", "longitude", "kma_code"}


class CityDirectory(Protocol):
    """Query contract the pairing core needs from a city store."""

    def find_within_radius(
        self, center: City, radius_miles: float, exclude_market_ids: Iterable[str] = ()
    ) -> list[City]:
        ...

    def find_by_normalized_name(self, name: str, state: str) -> list[City]:
        ...


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "t"}
    return bool(value)


def row_to_city(row: Mapping[str, Any]) -> City:
    """Convert a directory row into a ``City``; raises on malformed rows."""
    kma_code = row["kma_code"]
    if kma_code in (None, ""):
        raise ValueError("row has no kma_code")
    return City(
        name=str(row["city"]).strip(),
        state_code=str(row["state_or_province"]).strip().upper(),
        latitude=float(row["latitude"]),
        longitude=float(row["longitude"]),
        market_id=str(kma_code).strip(),
        market_name=str(row.get("kma_name") or "").strip(),
        zip_code=str(row.get("zip") or "").strip(),
        verified=_as_bool(row.get("here_verified")),
    )


def _rows_to_cities(rows: Iterable[Mapping[str, Any]]) -> list[City]:
    cities: list[City] = []
    for row in rows:
        try:
            cities.append(row_to_city(row))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Skipping invalid city row: {e}")
    return cities


def _rank_by_confidence(cities: Iterable[City]) -> list[City]:
    return sorted(cities, key=lambda city: (not city.verified, city.name.lower(), city.zip_code))


class InMemoryCityDirectory:
    """Read-only snapshot of city records."""

    def __init__(self, cities: Iterable[City] = ()) -> None:
        self._cities: tuple[City, ...] = tuple(cities)

    def __len__(self) -> int:
        return len(self._cities)

    @property
    def cities(self) -> tuple[City, ...]:
        return self._cities

    def find_within_radius(
        self, center: City, radius_miles: float, exclude_market_ids: Iterable[str] = ()
    ) -> list[City]:
        excluded = set(exclude_market_ids)
        return [
            city
            for city in self._cities
            if city.market_id not in excluded and within_radius(center, city, radius_miles)
        ]

    def find_by_normalized_name(self, name: str, state: str) -> list[City]:
        target = normalize_city_name(name)
        state_code = (state or "").strip().upper()
        matches = [
            city
            for city in self._cities
            if city.state_code == state_code and normalize_city_name(city.name) == target
        ]
        return _rank_by_confidence(matches)

    @classmethod
    def from_file(cls, source: Path) -> "InMemoryCityDirectory":
        return cls(load_cities_from_file(source))


def _read_csv_rows(path: Path) -> list[dict]:
    with path.open("r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        header = set(reader.fieldnames or [])
        missing_columns = REQUIRED_COLUMNS - header
        if missing_columns:
            raise ValueError(f"City file missing columns: {', '.join(sorted(missing_columns))}")
        return list(reader)


def _read_workbook_rows(path: Path) -> list[dict]:
    wb = load_workbook(path, data_only=True, read_only=True)
    sheet = wb.active
    rows = sheet.iter_rows(min_row=1, values_only=True)
    header = next(rows, None)
    if header is None:
        raise ValueError(f"City workbook '{path}' is empty.")

    columns = [str(name).strip() if name is not None else "" for name in header]
    missing_columns = REQUIRED_COLUMNS - set(columns)
    if missing_columns:
        raise ValueError(f"City workbook missing columns: {', '.join(sorted(missing_columns))}")
    return [dict(zip(columns, row)) for row in rows if any(value is not None for value in row)]


def load_cities_from_file(source: Path | None = None) -> tuple[City, ...]:
    """Load cities from a ``.csv`` or ``.xlsx`` sheet using the database column names."""
    path = source or settings.city_file
    if not path.exists():
        raise FileNotFoundError(f"City file not found: {path}")
    if path.suffix.lower() in {".xlsx", ".xlsm"}:
        rows = _read_workbook_rows(path)
    else:
        rows = _read_csv_rows(path)
    return tuple(_rows_to_cities(rows))


class SupabaseCityDirectory:
    """City directory backed by the Supabase ``cities`` table.

    Queries are narrowed on the server and read page by page, so the PostgREST
    response cap never truncates a result silently. ``query_limit`` bounds the
    total rows read per query; hitting it is logged.
    """

    def __init__(self, client: Any, query_limit: int | None = None, page_size: int | None = None) -> None:
        self.client = client
        self.query_limit = query_limit or settings.directory_query_limit
        self.page_size = page_size or settings.directory_page_size

    def _select(self):
        return self.client.table(CITY_TABLE).select(CITY_COLUMNS)

    def _fetch_rows(self, build_query: Callable[[], Any], description: str) -> list[dict]:
        rows: list[dict] = []
        while len(rows) < self.query_limit:
            start = len(rows)
            end = min(start + self.page_size, self.query_limit) - 1
            batch = build_query().range(start, end).execute().data or []
            rows.extend(batch)
            # A short page means the table has no more matching rows
            if len(batch) < end - start + 1:
                return rows
        logger.warning(f"{description} reached the {self.query_limit}-row limit; results may be incomplete")
        return rows

    def find_within_radius(
        self, center: City, radius_miles: float, exclude_market_ids: Iterable[str] = ()
    ) -> list[City]:
        if not center.has_coordinates:
            return []
        min_lat, max_lat, min_lon, max_lon = bounding_box(center.latitude, center.longitude, radius_miles)
        excluded = sorted(set(exclude_market_ids))

        def build_query():
            query = (
                self._select()
                .gte("latitude", min_lat)
                .lte("latitude", max_lat)
                .gte("longitude", min_lon)
                .lte("longitude", max_lon)
                .not_.is_("kma_code", "null")
            )
            if excluded:
                query = query.not_.in_("kma_code", excluded)
            return query.order("city").order("zip")

        try:
            rows = self._fetch_rows(build_query, f"Radius query around {center.name}, {center.state_code}")
        except Exception as e:
            raise DirectoryUnavailable(
                f"Radius query around {center.name}, {center.state_code} failed: {e}"
            ) from e

        return [
            city
            for city in _rows_to_cities(rows)
            if city.market_id not in excluded and within_radius(center, city, radius_miles)
        ]

    def find_by_normalized_name(self, name: str, state: str) -> list[City]:
        target = normalize_city_name(name)
        state_code = (state or "").strip().upper()
        if not target or not state_code:
            return []
        pattern = name_search_pattern(name)

        def build_query():
            return (
                self._select()
                .eq("state_or_province", state_code)
                .ilike("city", pattern)
                .not_.is_("latitude", "null")
                .not_.is_("kma_code", "null")
                .order("city")
                .order("zip")
            )

        try:
            rows = self._fetch_rows(build_query, f"Name lookup for {name}, {state_code}")
        except Exception as e:
            raise DirectoryUnavailable(f"Name lookup for {name}, {state_code} failed: {e}") from e

        matches = [city for city in _rows_to_cities(rows) if normalize_city_name(city.name) == target]
        return _rank_by_confidence(matches)

    def mark_verified(self, city: City, verified: bool = True) -> None:
        """Record a geocode verification outcome on the directory row (non-critical)."""
        try:
            (
                self.client.table(CITY_TABLE)
                .update({"here_verified": verified})
                .eq("city", city.name)
                .eq("state_or_province", city.state_code)
                .execute()
            )
        except Exception as e:
            logger.debug(f"Failed to record verification for {city.name}, {city.state_code} (non-critical): {e}")


@lru_cache()
def get_city_directory() -> CityDirectory:
    """Get the directory from the database first, falling back to the city file."""
    client = get_supabase_client()
    if client is not None:
        return SupabaseCityDirectory(client)

    if settings.city_file.exists():
        directory = InMemoryCityDirectory.from_file(settings.city_file)
        logger.info(f"Loaded {len(directory)} cities from {settings.city_file}")
        return directory

    logger.warning(f"No city directory configured; {settings.city_file} not found. Using an empty directory.")
    return InMemoryCityDirectory()


def clear_city_directory_cache() -> None:
    get_city_directory.cache_clear()
