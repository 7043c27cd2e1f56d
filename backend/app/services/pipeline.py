import asyncio
import enum
import logging
import random
from typing import Awaitable, Callable, List, Optional
from fastapi.responses import RedirectResponse, Response
from backend.app.core.config import settings
from backend.app.models.schemas import FormatCandidate, MediaMetadata, RequestProfile
from backend.app.services.errors import UpstreamTimeout, ValidationError, classify_upstream_error
from backend.app.services.extractor import MediaExtractor, extractor
from backend.app.services.ladder import run_ladder
from backend.app.services.prober import HttpProber, ProbeOutcome
from backend.app.services.profiles import ProfilePool
from backend.app.services.selector import select_audio_format
from backend.app.services.streamer import StreamProxy, stream_proxy

logger = logging.getLogger(__name__)

class PipelineState(str, enum.Enum):
    START = "start"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED_RESOLUTION = "failed_resolution"
    PROBING = "probing"
    REDIRECTING = "redirecting"
    STREAMING = "streaming"
    STREAMED = "streamed"
    STREAM_ERROR = "stream_error"

TERMINAL_STATES = {
    PipelineState.FAILED_RESOLUTION,
    PipelineState.REDIRECTING,
    PipelineState.STREAMED,
    PipelineState.STREAM_ERROR,
}

TRANSITIONS = {
    PipelineState.START: {PipelineState.RESOLVING},
    PipelineState.RESOLVING: {PipelineState.RESOLVED, PipelineState.FAILED_RESOLUTION},
    PipelineState.RESOLVED: {PipelineState.PROBING},
    PipelineState.PROBING: {PipelineState.REDIRECTING, PipelineState.STREAMING},
    PipelineState.STREAMING: {PipelineState.STREAMED, PipelineState.STREAM_ERROR},
}

class Delivery(str, enum.Enum):
    REDIRECT = "redirect"
    PROXY = "proxy"

def decide_delivery(target: Optional[FormatCandidate], outcome: ProbeOutcome) -> Delivery:
    if target is not None and target.url and outcome == ProbeOutcome.REACHABLE:
        return Delivery.REDIRECT
    return Delivery.PROXY

class PipelineRun:
    """State of one stream request."""

    def __init__(self, video_id: str):
        self.video_id = video_id
        self.state = PipelineState.START
        self.history: List[PipelineState] = [PipelineState.START]
        self.profile: Optional[RequestProfile] = None

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    def advance(self, state: PipelineState):
        if state not in TRANSITIONS.get(self.state, ()):
            raise RuntimeError(f"Illegal transition {self.state.value} -> {state.value}")
        logger.debug("[*] %s: %s -> %s", self.video_id, self.state.value, state.value)
        self.state = state
        self.history.append(state)

class StreamPipeline:
    def __init__(
        self,
        resolver: MediaExtractor,
        prober: HttpProber,
        proxy: StreamProxy,
        profiles: Optional[ProfilePool] = None,
        attempts: int = 3,
        jitter: tuple = (0.5, 1.5),
        timeout: float = 0,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.resolver = resolver
        self.prober = prober
        self.proxy = proxy
        self.rng = rng or random.Random()
        self.profiles = profiles or ProfilePool(rng=self.rng)
        self.attempts = attempts
        self.jitter = jitter
        self.timeout = timeout
        self.sleep = sleep

    async def _jitter(self):
        low, high = self.jitter
        if high <= 0:
            return
        await self.sleep(self.rng.uniform(max(low, 0), high))

    async def resolve(self, run: PipelineRun) -> MediaMetadata:
        """Walk the profile ladder until the resolver returns metadata."""
        run.advance(PipelineState.RESOLVING)
        await self._jitter()
        ladder = self.profiles.ladder(self.attempts)
        try:
            profile, metadata = await run_ladder(
                ladder,
                lambda p: self.resolver.resolve(run.video_id, p),
                label=f"resolve {run.video_id}",
            )
        except Exception as e:
            run.advance(PipelineState.FAILED_RESOLUTION)
            raise classify_upstream_error(e) from e
        run.profile = profile
        run.advance(PipelineState.RESOLVED)
        logger.info("[+] Resolved %s with %s (%d formats)", run.video_id, profile.name, len(metadata.formats))
        return metadata

    async def _probe(self, target: Optional[FormatCandidate]) -> ProbeOutcome:
        if target is None:
            return ProbeOutcome.FAILED
        return await self.prober.probe(target.url)

    def _finish_stream(self, run: PipelineRun) -> Callable[[bool], None]:
        def finish(ok: bool):
            run.advance(PipelineState.STREAMED if ok else PipelineState.STREAM_ERROR)
        return finish

    async def _deliver(self, run: PipelineRun, range_header: Optional[str]) -> Response:
        metadata = await self.resolve(run)
        target = select_audio_format(metadata.formats)

        run.advance(PipelineState.PROBING)
        outcome = await self._probe(target)
        if decide_delivery(target, outcome) == Delivery.REDIRECT:
            run.advance(PipelineState.REDIRECTING)
            logger.info("[+] Redirecting %s to direct URL", run.video_id)
            return RedirectResponse(target.url, status_code=302, headers={"Access-Control-Allow-Origin": "*"})

        run.advance(PipelineState.STREAMING)
        logger.info("[*] Proxying %s (probe %s)", run.video_id, outcome.value)
        try:
            return await self.proxy.proxy_stream(
                run.video_id, run.profile, range_header, on_complete=self._finish_stream(run)
            )
        except BaseException:
            run.advance(PipelineState.STREAM_ERROR)
            raise

    async def handle(self, video_id: Optional[str], range_header: Optional[str] = None, run: Optional[PipelineRun] = None) -> Response:
        """Resolve `video_id` and answer with a redirect or a proxied stream.

        Raises StreamServiceError subclasses; the endpoint turns them into
        JSON error responses.
        """
        if not video_id or not video_id.strip():
            raise ValidationError()
        run = run or PipelineRun(video_id.strip())
        if not self.timeout:
            return await self._deliver(run, range_header)
        try:
            return await asyncio.wait_for(self._deliver(run, range_header), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error("[!] %s timed out in state %s", run.video_id, run.state.value)
            raise UpstreamTimeout() from e

stream_pipeline = StreamPipeline(
    extractor,
    HttpProber(timeout=settings.PROBE_TIMEOUT),
    stream_proxy,
    attempts=settings.RESOLVE_ATTEMPTS,
    jitter=(settings.JITTER_MIN, settings.JITTER_MAX),
    timeout=settings.REQUEST_TIMEOUT,
)
