import fnmatch
import math
import sys
from pathlib import Path

import pytest
import redis

# Ensure the `geoload` package is importable when running pytest from the repo root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from geoload.core import config, store  # noqa: E402

EARTH_RADIUS_KM = 6372.7976


def haversine_km(lon1, lat1, lon2, lat2):
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = math.sin(dlat / 2) ** 2 + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.asin(math.sqrt(a))


class DummyPipeline:
    def __init__(self, client):
        self.client = client
        self.queued = []

    def __len__(self):
        return len(self.queued)

    def hset(self, name, mapping):
        self.queued.append(("hset", (name,), {"mapping": mapping}))

    def geoadd(self, name, values):
        self.queued.append(("geoadd", (name, values), {}))

    def reset(self):
        self.queued = []

    def execute(self):
        queued, self.queued = self.queued, []
        if any(command == "geoadd" for command, _, _ in queued) and self.client.fail_next_geoadd:
            self.client.fail_next_geoadd -= 1
            raise redis.ConnectionError("connection reset during EXEC")
        self.client.executed_pipelines += 1
        return [getattr(self.client, command)(*args, **kwargs) for command, args, kwargs in queued]


class DummyRedis:
    """In-memory stand-in for the handful of Redis commands the pipeline uses."""

    def __init__(self):
        self.hashes = {}
        self.geo = {}
        self.fail_next_geoadd = 0
        self.fail_search = False
        self.search_calls = 0
        self.geoadd_calls = 0
        self.executed_pipelines = 0
        self.closed = False

    def ping(self):
        return True

    def close(self):
        self.closed = True

    def delete(self, *keys):
        deleted = 0
        for key in keys:
            if self.hashes.pop(key, None) is not None:
                deleted += 1
            elif self.geo.pop(key, None) is not None:
                deleted += 1
        return deleted

    def scan_iter(self, match=None, count=None):
        keys = list(self.hashes) + list(self.geo)
        for key in keys:
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    def hset(self, name, mapping):
        target = self.hashes.setdefault(name, {})
        added = sum(1 for field in mapping if field not in target)
        target.update({field: str(value) for field, value in mapping.items()})
        return added

    def hgetall(self, name):
        return dict(self.hashes.get(name, {}))

    def geoadd(self, name, values):
        if self.fail_next_geoadd:
            self.fail_next_geoadd -= 1
            raise redis.ConnectionError("connection reset")
        self.geoadd_calls += 1
        members = self.geo.setdefault(name, {})
        added = 0
        for offset in range(0, len(values), 3):
            longitude, latitude, member = values[offset:offset + 3]
            if abs(longitude) > 180 or abs(latitude) > 85.05112878:
                raise redis.ResponseError("invalid longitude,latitude pair")
            if member not in members:
                added += 1
            members[member] = (longitude, latitude)
        return added

    def geosearch(self, name, longitude, latitude, radius, unit, sort, count, withdist):
        self.search_calls += 1
        if self.fail_search:
            raise redis.ConnectionError("connection refused")
        assert unit == "km" and withdist
        matches = []
        for member, (member_lon, member_lat) in self.geo.get(name, {}).items():
            distance = haversine_km(longitude, latitude, member_lon, member_lat)
            if distance <= radius:
                matches.append([member, round(distance, 4)])
        matches.sort(key=lambda match: match[1], reverse=sort == "DESC")
        return matches[:count] if count else matches

    def zcard(self, name):
        return len(self.geo.get(name, {}))

    def zrange(self, name, start, end):
        members = list(self.geo.get(name, {}))
        return members[start:end + 1]

    def pipeline(self, transaction=True):
        return DummyPipeline(self)


@pytest.fixture
def fake_redis():
    return DummyRedis()


@pytest.fixture(autouse=True)
def reset_shared_state():
    config.get_settings.cache_clear()
    store._client = None
    yield
    config.get_settings.cache_clear()
    store._client = None
