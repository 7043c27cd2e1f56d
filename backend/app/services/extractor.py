import asyncio
import logging
import yt_dlp
from typing import Dict, Any, Optional
from backend.app.core.config import settings
from backend.app.models.schemas import FormatCandidate, MediaMetadata, RequestProfile, StreamTarget

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={}"

def _has_codec(value: Optional[str]) -> bool:
    return value not in (None, 'none')

class MediaExtractor:
    """Metadata resolver backed by yt-dlp.

    Filesystem options are fixed at construction so the resolver never needs
    the process environment patched to run on a read-only host.
    """

    def __init__(
        self,
        socket_timeout: float = 10,
        temp_dir: Optional[str] = None,
        cache_dir: Optional[str] = None,
        disable_cache: bool = False,
    ):
        self.socket_timeout = socket_timeout
        self.temp_dir = temp_dir
        self.cache_dir = cache_dir
        self.disable_cache = disable_cache

    def _video_url(self, video_id: str) -> str:
        if video_id.startswith(('http://', 'https://')):
            return video_id
        return WATCH_URL.format(video_id)

    def _base_opts(self, profile: Optional[RequestProfile]) -> Dict[str, Any]:
        opts = {
            'quiet': True, 'no_warnings': True, 'skip_download': True,
            'noplaylist': True, 'no_color': True,
            'socket_timeout': self.socket_timeout,
        }
        if profile is not None and profile.headers:
            opts['http_headers'] = dict(profile.headers)
        if self.temp_dir:
            opts['paths'] = {'temp': self.temp_dir}
        if self.disable_cache:
            opts['cachedir'] = False
        elif self.cache_dir:
            opts['cachedir'] = self.cache_dir
        return opts

    async def resolve(self, video_id: str, profile: Optional[RequestProfile] = None) -> MediaMetadata:
        """Fetch every advertised format for `video_id` under `profile`'s headers."""
        info = await self._run_ydl(video_id, self._base_opts(profile))
        return self._parse_info(info, video_id)

    async def resolve_stream_target(self, video_id: str, profile: Optional[RequestProfile] = None) -> StreamTarget:
        """Let yt-dlp choose the best audio track and return where to fetch it."""
        opts = self._base_opts(profile)
        opts['format'] = 'bestaudio/best'
        info = await self._run_ydl(video_id, opts)
        if 'entries' in info and info['entries']: info = info['entries'][0]

        url = info.get('url')
        if not url:
            raise ValueError(f"No streamable audio format for {video_id}")
        ext = info.get('audio_ext')
        if ext in (None, 'none'): ext = info.get('ext')
        return StreamTarget(url=url, ext=ext, http_headers=info.get('http_headers') or {})

    async def _run_ydl(self, video_id: str, opts: dict) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        info = await loop.run_in_executor(None, self._extract_sync, self._video_url(video_id), opts)
        if not info:
            raise ValueError(f"Empty metadata for {video_id}")
        return info

    def _extract_sync(self, url: str, opts: dict):
        with yt_dlp.YoutubeDL(opts) as ydl:
            return ydl.extract_info(url, download=False)

    def _parse_info(self, info: Dict[str, Any], video_id: str) -> MediaMetadata:
        if 'entries' in info and info['entries']: info = info['entries'][0]

        formats = []
        for f in info.get('formats') or []:
            abr = f.get('abr')
            formats.append(FormatCandidate(
                has_audio=_has_codec(f.get('acodec')),
                has_video=_has_codec(f.get('vcodec')),
                audio_bitrate=max(int(round(abr)), 0) if abr is not None else None,
                url=f.get('url'),
                format_id=str(f.get('format_id')) if f.get('format_id') is not None else None,
                ext=f.get('ext'),
                http_headers=f.get('http_headers') or {},
            ))

        logger.debug("[*] %s advertises %d formats", video_id, len(formats))
        return MediaMetadata(id=info.get('id') or video_id, title=info.get('title'), formats=formats)

extractor = MediaExtractor(
    socket_timeout=settings.SOCKET_TIMEOUT,
    temp_dir=settings.TEMP_DIR,
    cache_dir=settings.CACHE_DIR,
    disable_cache=settings.DISABLE_CACHE,
)
