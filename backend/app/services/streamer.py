import asyncio
import logging
import httpx
from fastapi.responses import StreamingResponse
from typing import AsyncIterator, Callable, Dict, Optional
from backend.app.core.config import settings
from backend.app.models.schemas import RequestProfile, StreamTarget
from backend.app.services.errors import StreamCreationFailure
from backend.app.services.extractor import MediaExtractor, extractor
from backend.app.services.ladder import run_ladder
from backend.app.services.profiles import MINIMAL_PROFILE

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    'webm': 'audio/webm',
    'weba': 'audio/webm',
    'm4a': 'audio/mp4',
    'mp4': 'audio/mp4',
    'mp3': 'audio/mpeg',
    'ogg': 'audio/ogg',
    'opus': 'audio/ogg',
}

def audio_content_type(ext: Optional[str], default: str = "audio/webm") -> str:
    return CONTENT_TYPES.get((ext or '').lower(), default)

class UpstreamStream:
    """An open upstream response together with the client that owns it."""

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response, ext: Optional[str], chunk_size: int):
        self.client = client
        self.response = response
        self.ext = ext
        self.chunk_size = chunk_size

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self.response.headers

    def iter_bytes(self) -> AsyncIterator[bytes]:
        return self.response.aiter_bytes(chunk_size=self.chunk_size)

    async def aclose(self):
        try:
            await self.response.aclose()
        finally:
            await self.client.aclose()

class StreamFactory:
    def __init__(
        self,
        resolver: MediaExtractor,
        timeout: float = 30,
        chunk_size: int = 1024 * 128,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.resolver = resolver
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.transport = transport

    def _headers(self, target: StreamTarget, profile: Optional[RequestProfile], range_header: Optional[str]) -> Dict[str, str]:
        headers = dict(target.http_headers)
        if profile is not None:
            headers.update(profile.headers)
        if range_header: headers['Range'] = range_header
        return headers

    async def open_stream(self, video_id: str, profile: Optional[RequestProfile], range_header: Optional[str] = None) -> UpstreamStream:
        """Open the best audio track of `video_id` as a byte stream.

        Any failure before the upstream answers with a usable status is raised
        as StreamCreationFailure.
        """
        try:
            target = await self.resolver.resolve_stream_target(video_id, profile)
        except Exception as e:
            raise StreamCreationFailure(f"Could not resolve stream target: {e}") from e

        client = httpx.AsyncClient(follow_redirects=True, timeout=self.timeout, transport=self.transport)
        try:
            request = client.build_request("GET", target.url, headers=self._headers(target, profile, range_header))
            response = await client.send(request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            await client.aclose()
            raise StreamCreationFailure(f"Upstream connection failed: {e}") from e
        except BaseException:
            await client.aclose()
            raise

        if response.status_code >= 400:
            await response.aclose()
            await client.aclose()
            raise StreamCreationFailure(f"Upstream answered {response.status_code}")

        return UpstreamStream(client, response, target.ext, self.chunk_size)

class StreamProxy:
    def __init__(
        self,
        factory: StreamFactory,
        default_content_type: str = "audio/webm",
        strict_range: bool = False,
    ):
        self.factory = factory
        self.default_content_type = default_content_type
        self.strict_range = strict_range

    def _response_headers(self, upstream: UpstreamStream) -> Dict[str, str]:
        res_headers = {
            "Accept-Ranges": "bytes",
            "Content-Type": audio_content_type(upstream.ext, self.default_content_type),
            "Access-Control-Allow-Origin": "*",
            "Content-Range": upstream.headers.get("Content-Range", ""),
        }
        # Decoded chunks no longer match an encoded length
        if self.strict_range and not upstream.headers.get("Content-Encoding"):
            res_headers["Content-Length"] = upstream.headers.get("Content-Length", "")

        # Remove empty values
        return {k: v for k, v in res_headers.items() if v}

    async def open(self, video_id: str, profile: RequestProfile, range_header: Optional[str] = None) -> UpstreamStream:
        """Open under `profile`, retrying once with resolver defaults only."""
        attempts = [profile] if profile.is_minimal else [profile, MINIMAL_PROFILE]

        async def attempt(p: RequestProfile) -> UpstreamStream:
            return await self.factory.open_stream(video_id, p, range_header)

        _, upstream = await run_ladder(attempts, attempt, label=f"stream {video_id}")
        return upstream

    async def proxy_stream(
        self,
        video_id: str,
        profile: RequestProfile,
        range_header: Optional[str] = None,
        on_complete: Optional[Callable[[bool], None]] = None,
    ) -> StreamingResponse:
        """Relay the upstream audio bytes, forwarding the client's Range header as-is.

        `on_complete` is called with True once the whole body was relayed and
        with False if the upstream broke off or the client went away.
        """
        upstream = await self.open(video_id, profile, range_header)

        # Pull the first chunk while an error status can still be sent
        chunks = upstream.iter_bytes()
        try:
            first = await chunks.__anext__()
        except StopAsyncIteration:
            first = b""
        except asyncio.CancelledError:
            await upstream.aclose()
            raise
        except Exception as e:
            await upstream.aclose()
            raise StreamCreationFailure(f"Upstream failed before first byte: {e}") from e

        async def stream_generator() -> AsyncIterator[bytes]:
            sent = 0
            ok = False
            try:
                if first:
                    sent += len(first)
                    yield first
                async for chunk in chunks:
                    sent += len(chunk)
                    yield chunk
                ok = True
                logger.info("[+] Streamed %s (%d bytes)", video_id, sent)
            except (httpx.HTTPError, httpx.StreamError) as e:
                # Headers are already out, the body just ends short
                logger.warning("[-] Stream for %s truncated after %d bytes: %s", video_id, sent, e)
            finally:
                await upstream.aclose()
                if on_complete is not None:
                    on_complete(ok)

        return StreamingResponse(
            stream_generator(),
            status_code=upstream.status_code,
            headers=self._response_headers(upstream),
        )

stream_factory = StreamFactory(
    extractor,
    timeout=settings.STREAM_TIMEOUT,
    chunk_size=settings.STREAM_CHUNK_SIZE,
)

stream_proxy = StreamProxy(
    stream_factory,
    default_content_type=settings.DEFAULT_AUDIO_CONTENT_TYPE,
    strict_range=settings.STRICT_RANGE_RESPONSES,
)
