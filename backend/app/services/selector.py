from typing import Iterable, Optional
from backend.app.models.schemas import FormatCandidate

def is_direct_audio(fmt: FormatCandidate) -> bool:
    return fmt.has_audio and not fmt.has_video and bool(fmt.url)

def select_audio_format(formats: Iterable[FormatCandidate]) -> Optional[FormatCandidate]:
    """Pick the highest-bitrate audio-only format that carries a direct URL.

    Missing bitrates count as 0 and ties keep the earliest candidate.
    """
    candidates = [f for f in formats if is_direct_audio(f)]
    if not candidates:
        return None
    # max() returns the first maximal element
    return max(candidates, key=lambda f: f.audio_bitrate or 0)
