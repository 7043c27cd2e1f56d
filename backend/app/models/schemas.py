from pydantic import BaseModel, ConfigDict
from typing import Dict, List, Optional

class FormatCandidate(BaseModel):
    has_audio: bool
    has_video: bool
    audio_bitrate: Optional[int] = None
    url: Optional[str] = None
    format_id: Optional[str] = None
    ext: Optional[str] = None
    http_headers: Dict[str, str] = {}

class MediaMetadata(BaseModel):
    id: str
    title: Optional[str] = None
    formats: List[FormatCandidate] = []

class StreamTarget(BaseModel):
    url: str
    ext: Optional[str] = None
    http_headers: Dict[str, str] = {}

class RequestProfile(BaseModel):
    """A fixed set of outbound headers posing as one client."""
    model_config = ConfigDict(frozen=True)

    name: str
    headers: Dict[str, str] = {}

    @property
    def is_minimal(self) -> bool:
        return not self.headers

class ErrorResponse(BaseModel):
    error: str
    code: Optional[str] = None
