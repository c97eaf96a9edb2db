import redis

from schemas.models import Earthquake

HEADER = ("Date - Time (Philippine Time)", "Latitude (ºN)", "Longitude (ºE)",
          "Depth (km)", "Mag", "Location")


def table_html(rows, header=HEADER) -> str:
    """Render rows (lists of cell strings) as a PHIVOLCS-like page."""
    parts = ["<html><body><table>"]
    if header:
        parts.append("<tr>" + "".join(f"<th>{h}</th>" for h in header) + "</tr>")
    for row in rows:
        parts.append("<tr>" + "".join(f"<td>{c}</td>" for c in row) + "</tr>")
    parts.append("</table></body></html>")
    return "\n".join(parts)


def quake(time, mag=4.0, place="Somewhere") -> Earthquake:
    return Earthquake(date=str(time), time=time, lat=14.5, lon=121.0, depth=10.0, mag=mag, place=place)


class FakeRedis:
    """In-memory get/set with an optional failure switch."""

    def __init__(self, fail=False):
        self.data = {}
        self.fail = fail

    def get(self, key):
        if self.fail:
            raise redis.ConnectionError("redis down")
        return self.data.get(key)

    def set(self, key, value):
        if self.fail:
            raise redis.ConnectionError("redis down")
        self.data[key] = value


class FakeFetcher:
    """Stands in for fetch_latest / fetch_month and records calls."""

    def __init__(self, latest=None, monthly=None):
        self.latest = latest or []
        self.monthly = monthly or []
        self.latest_calls = 0
        self.monthly_calls = []

    def fetch_latest(self):
        self.latest_calls += 1
        return list(self.latest)

    def fetch_month(self, year, month_index):
        self.monthly_calls.append((year, month_index))
        return list(self.monthly)
