from types import SimpleNamespace

import pytest
from openpyxl import Workbook

from lanepairs.data import city_repository
from lanepairs.data.city_repository import (
    InMemoryCityDirectory,
    SupabaseCityDirectory,
    load_cities_from_file,
    row_to_city,
)
from lanepairs.models.domain import City
from lanepairs.models.errors import DirectoryUnavailable

HEADER = ["city", "state_or_province", "zip", "latitude", "longitude", "kma_code", "kma_name", "here_verified"]
ROWS = [
    ["Fort Wayne", "in", "46802", 41.0793, -85.1394, "IN_FTW", "Fort Wayne Mkt", "true"],
    ["New Haven", "IN", "46774", 41.0706, -85.0144, "IN_FTW", "Fort Wayne Mkt", ""],
    ["Bad Row", "IN", "", "n/a", -85.0, "IN_BAD", "", ""],
    ["No Market", "IN", "", 41.0, -85.0, "", "", ""],
]


def _write_csv(path):
    lines = [",".join(HEADER)] + [",".join(str(value) for value in row) for row in ROWS]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_row_to_city_normalizes_fields():
    city = row_to_city(dict(zip(HEADER, ROWS[0])))

    assert city == City(
        "Fort Wayne", "IN", 41.0793, -85.1394, "IN_FTW", "Fort Wayne Mkt", zip_code="46802", verified=True
    )


def test_load_csv_skips_invalid_rows(tmp_path):
    cities = load_cities_from_file(_write_csv(tmp_path / "cities.csv"))

    assert [city.name for city in cities] == ["Fort Wayne", "New Haven"]
    assert cities[1].verified is False


def test_load_workbook(tmp_path):
    wb = Workbook()
    ws = wb.active
    ws.append(HEADER)
    for row in ROWS[:2]:
        ws.append(row)
    path = tmp_path / "cities.xlsx"
    wb.save(path)

    cities = load_cities_from_file(path)

    assert [city.market_id for city in cities] == ["IN_FTW", "IN_FTW"]
    assert cities[0].latitude == pytest.approx(41.0793)


def test_missing_columns_rejected(tmp_path):
    path = tmp_path / "cities.csv"
    path.write_text("city,latitude\nFort Wayne,41.0\n", encoding="utf-8")

    with pytest.raises(ValueError, match="kma_code"):
        load_cities_from_file(path)


def test_missing_file_rejected(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_cities_from_file(tmp_path / "absent.csv")


def test_in_memory_name_lookup_is_normalized(tmp_path):
    directory = InMemoryCityDirectory.from_file(_write_csv(tmp_path / "cities.csv"))

    assert [city.name for city in directory.find_by_normalized_name("FT. WAYNE", "in")] == ["Fort Wayne"]
    assert directory.find_by_normalized_name("Fort Wayne", "OH") == []


def test_get_city_directory_falls_back_to_file(tmp_path, monkeypatch):
    monkeypatch.setattr(city_repository, "get_supabase_client", lambda: None)
    monkeypatch.setattr(city_repository.settings, "city_file", _write_csv(tmp_path / "cities.csv"))
    city_repository.clear_city_directory_cache()
    try:
        directory = city_repository.get_city_directory()
        assert isinstance(directory, InMemoryCityDirectory)
        assert len(directory) == 2
    finally:
        city_repository.clear_city_directory_cache()


def test_get_city_directory_prefers_database(monkeypatch):
    client = _FakeClient([])
    monkeypatch.setattr(city_repository, "get_supabase_client", lambda: client)
    city_repository.clear_city_directory_cache()
    try:
        directory = city_repository.get_city_directory()
        assert isinstance(directory, SupabaseCityDirectory)
        assert directory.client is client
    finally:
        city_repository.clear_city_directory_cache()


class _FakeQuery:
    """Records the PostgREST-style filter chain and returns canned rows."""

    def __init__(self, client):
        self.client = client
        self.negate = False
        self.window = None

    @property
    def not_(self):
        self.negate = True
        return self

    def _record(self, op, *args):
        self.client.filters.append((("not." if self.negate else "") + op, *args))
        self.negate = False
        return self

    def select(self, columns):
        return self._record("select", columns)

    def update(self, values):
        return self._record("update", values)

    def gte(self, column, value):
        return self._record("gte", column, value)

    def lte(self, column, value):
        return self._record("lte", column, value)

    def eq(self, column, value):
        return self._record("eq", column, value)

    def is_(self, column, value):
        return self._record("is", column, value)

    def in_(self, column, values):
        return self._record("in", column, tuple(values))

    def ilike(self, column, pattern):
        return self._record("ilike", column, pattern)

    def range(self, start, end):
        self.window = (start, end)
        return self._record("range", start, end)

    def order(self, column):
        return self._record("order", column)

    def limit(self, count):
        return self._record("limit", count)

    def execute(self):
        if self.client.error is not None:
            raise self.client.error
        rows = self.client.rows
        if self.window is not None:
            # PostgREST never returns more than the server cap, whatever the range
            start, end = self.window
            rows = rows[start : min(end + 1, start + self.client.server_cap)]
        return SimpleNamespace(data=rows)


class _FakeClient:
    def __init__(self, rows, error=None, server_cap=1000):
        self.rows = rows
        self.server_cap = server_cap
        self.error = error
        self.filters = []
        self.tables = []

    def table(self, name):
        self.tables.append(name)
        return _FakeQuery(self)


def _db_rows():
    return [dict(zip(HEADER, row)) for row in ROWS] + [
        dict(zip(HEADER, ["Far Away", "IN", "", 43.5, -85.1, "IN_FAR", "", ""])),
        dict(zip(HEADER, ["Huntington", "IN", "", 40.8831, -85.4975, "IN_HUN", "", ""])),
    ]


def test_supabase_radius_query_filters_and_refines():
    client = _FakeClient(_db_rows())
    center = City("Fort Wayne", "IN", 41.0793, -85.1394, "IN_FTW")

    cities = SupabaseCityDirectory(client).find_within_radius(center, 50.0, {"IN_FTW"})

    assert [city.name for city in cities] == ["Huntington"]
    assert client.tables == ["cities"]
    ops = [entry[0] for entry in client.filters]
    assert ops.count("gte") == 2 and ops.count("lte") == 2
    assert ("not.is", "kma_code", "null") in client.filters
    assert ("not.in", "kma_code", ("IN_FTW",)) in client.filters


def test_supabase_radius_query_skips_unresolved_center():
    client = _FakeClient(_db_rows())

    assert SupabaseCityDirectory(client).find_within_radius(City.unresolved("Nowhere", "IN"), 50.0) == []
    assert client.tables == []


def test_supabase_name_lookup():
    client = _FakeClient(_db_rows())

    matches = SupabaseCityDirectory(client).find_by_normalized_name("ft wayne", "in")

    assert [city.name for city in matches] == ["Fort Wayne"]
    assert ("eq", "state_or_province", "IN") in client.filters


def test_supabase_errors_raise_directory_unavailable():
    directory = SupabaseCityDirectory(_FakeClient([], error=ConnectionError("offline")))
    center = City("Fort Wayne", "IN", 41.0793, -85.1394, "IN_FTW")

    with pytest.raises(DirectoryUnavailable):
        directory.find_within_radius(center, 50.0)
    with pytest.raises(DirectoryUnavailable):
        directory.find_by_normalized_name("Fort Wayne", "IN")


def test_mark_verified_updates_row_and_tolerates_failure():
    client = _FakeClient([])
    city = City("Fort Wayne", "IN", 41.0793, -85.1394, "IN_FTW")

    SupabaseCityDirectory(client).mark_verified(city)

    assert ("update", {"here_verified": True}) in client.filters
    assert ("eq", "city", "Fort Wayne") in client.filters

    SupabaseCityDirectory(_FakeClient([], error=ConnectionError("offline"))).mark_verified(city)


def _filler_rows(count, latitude=45.0):
    return [
        dict(zip(HEADER, [f"Town {i:04d}", "IN", f"4{i:04d}", latitude, -86.0, f"IN_T{i}", "", ""]))
        for i in range(count)
    ]


def test_supabase_name_lookup_narrows_on_server_and_pages_past_response_cap():
    rows = _filler_rows(2400) + [dict(zip(HEADER, ROWS[0]))]
    client = _FakeClient(rows)

    matches = SupabaseCityDirectory(client, query_limit=5000, page_size=1000).find_by_normalized_name(
        "Ft. Wayne", "IN"
    )

    assert [city.name for city in matches] == ["Fort Wayne"]
    assert ("ilike", "city", "%wayne%") in client.filters
    assert [entry[1:] for entry in client.filters if entry[0] == "range"] == [(0, 999), (1000, 1999), (2000, 2999)]


def test_supabase_radius_query_reads_every_page():
    near = dict(zip(HEADER, ["Zz Near", "IN", "", 41.1793, -85.1394, "IN_NEAR", "", ""]))
    client = _FakeClient(_filler_rows(2400) + [near])
    center = City("Fort Wayne", "IN", 41.0793, -85.1394, "IN_FTW")

    cities = SupabaseCityDirectory(client, query_limit=5000, page_size=1000).find_within_radius(center, 50.0)

    assert [city.name for city in cities] == ["Zz Near"]
    assert ("order", "city") in client.filters and ("order", "zip") in client.filters


def test_supabase_query_limit_is_logged(caplog):
    client = _FakeClient(_filler_rows(5, latitude=41.0793))
    center = City("Fort Wayne", "IN", 41.0793, -85.1394, "IN_FTW")

    with caplog.at_level("WARNING", logger="lanepairs.data.city_repository"):
        cities = SupabaseCityDirectory(client, query_limit=3, page_size=2).find_within_radius(center, 50.0)

    assert len(cities) == 3
    assert "3-row limit" in caplog.text
