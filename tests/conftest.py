import random

import httpx
import pytest
from fastapi.testclient import TestClient

from backend.app.api.endpoints import get_pipeline
from backend.app.main import app
from backend.app.models.schemas import FormatCandidate, MediaMetadata, RequestProfile
from backend.app.services.pipeline import StreamPipeline
from backend.app.services.prober import ProbeOutcome
from backend.app.services.profiles import ProfilePool
from backend.app.services.streamer import StreamProxy


P1 = RequestProfile(name="p1", headers={"User-Agent": "agent-1"})
P2 = RequestProfile(name="p2", headers={"User-Agent": "agent-2"})
P3 = RequestProfile(name="p3", headers={"User-Agent": "agent-3"})


class InOrderRandom(random.Random):
    """Keeps ladders in declaration order so tests know which profile runs when."""

    def sample(self, population, k, **kwargs):
        return list(population)[:k]


def audio(url, bitrate=None, video=False):
    return FormatCandidate(has_audio=True, has_video=video, audio_bitrate=bitrate, url=url, ext="webm")


def metadata(*formats):
    return MediaMetadata(id="abc123", title="Song", formats=list(formats))


class FakeResolver:
    """Returns or raises per profile name; `default` covers unlisted profiles."""

    def __init__(self, outcomes=None, default=None):
        self.outcomes = outcomes or {}
        self.default = default if default is not None else metadata(audio("https://media.example/a", 160))
        self.calls = []

    async def resolve(self, video_id, profile=None):
        self.calls.append((video_id, profile.name if profile else None))
        outcome = self.outcomes.get(profile.name if profile else None, self.default)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeProber:
    def __init__(self, outcome=ProbeOutcome.FAILED):
        self.outcome = outcome
        self.urls = []

    async def probe(self, url, headers=None):
        self.urls.append(url)
        return self.outcome


class FakeUpstream:
    def __init__(self, chunks=(b"audio-bytes",), status_code=200, headers=None, ext="webm"):
        self.chunks = list(chunks)
        self.status_code = status_code
        self.headers = httpx.Headers(headers or {})
        self.ext = ext
        self.closed = False

    async def iter_bytes(self):
        for chunk in self.chunks:
            if isinstance(chunk, BaseException):
                raise chunk
            yield chunk

    async def aclose(self):
        self.closed = True


class FakeFactory:
    """Hands out upstreams per profile name, raising where an exception is configured."""

    def __init__(self, upstreams=None, default=None):
        self.upstreams = upstreams or {}
        self.default = default
        self.calls = []

    async def open_stream(self, video_id, profile, range_header=None):
        self.calls.append((video_id, profile.name, range_header))
        upstream = self.upstreams.get(profile.name, self.default)
        if upstream is None:
            upstream = FakeUpstream()
        if isinstance(upstream, BaseException):
            raise upstream
        return upstream


def build_pipeline(resolver=None, prober=None, factory=None, profiles=(P1, P2, P3), timeout=0, strict_range=False):
    rng = InOrderRandom()
    return StreamPipeline(
        resolver or FakeResolver(),
        prober or FakeProber(),
        StreamProxy(factory or FakeFactory(), strict_range=strict_range),
        profiles=ProfilePool(profiles, rng=rng),
        attempts=len(profiles),
        jitter=(0, 0),
        timeout=timeout,
        rng=rng,
    )


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def use_pipeline():
    def install(pipeline):
        app.dependency_overrides[get_pipeline] = lambda: pipeline
        return pipeline
    yield install
    app.dependency_overrides.clear()
