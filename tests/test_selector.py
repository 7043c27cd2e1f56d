from backend.app.models.schemas import FormatCandidate
from backend.app.services.selector import select_audio_format

from conftest import audio


def test_picks_highest_bitrate_audio_only():
    muxed = audio("https://media.example/muxed", 320, video=True)
    low = audio("https://media.example/128", 128)
    high = audio("https://media.example/256", 256)

    assert select_audio_format([muxed, low, high]) is high


def test_missing_bitrate_counts_as_zero():
    unknown = audio("https://media.example/unknown")
    low = audio("https://media.example/48", 48)

    assert select_audio_format([unknown, low]) is low


def test_ties_keep_first_candidate():
    first = audio("https://media.example/first", 128)
    second = audio("https://media.example/second", 128)

    assert select_audio_format([first, second]) is first


def test_formats_without_url_or_audio_are_ignored():
    no_url = audio(None, 999)
    video_only = FormatCandidate(has_audio=False, has_video=True, audio_bitrate=None, url="https://media.example/v")
    empty_url = audio("", 500)

    assert select_audio_format([no_url, video_only, empty_url]) is None


def test_empty_list_selects_nothing():
    assert select_audio_format([]) is None
