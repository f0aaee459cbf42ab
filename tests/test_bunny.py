import threading

import requests

from captionkit.bunny import (
    BunnyClient,
    candidate_filenames,
    is_valid_caption_content,
    probe_storage_captions,
)
from captionkit.models import (
    METHOD_STORAGE_DIRECT,
    BunnyConfig,
    NotFound,
    Success,
    VendorError,
)
from captionkit.retry import RetryPolicy

from fakes import FakeResponse, FakeSession, timeout_error

VIDEO_ID = "video-1"
API_URL = f"https://video.bunnycdn.com/library/42/videos/{VIDEO_ID}"
STORAGE = f"https://storage.bunnycdn.com/zone/{VIDEO_ID}/captions"

SRT_BODY = "1\n00:00:01,000 --> 00:00:02,000\nHola\n"


def test_get_video_parses_caption_entries(client, session):
    session.routes[API_URL] = FakeResponse(200, json_data={
        "guid": VIDEO_ID,
        "length": 95,
        "captions": [
            {"srclang": "en", "label": "English"},
            {"srclang": "es", "label": "Spanish", "url": "https://files.example.com/es.vtt"},
        ],
    })

    result = client.get_video(VIDEO_ID)

    assert isinstance(result, Success)
    metadata = result.data
    assert metadata.duration == 95
    assert [c.language for c in metadata.captions] == ["en", "es"]
    assert metadata.captions[0].url == f"https://cdn.example.com/{VIDEO_ID}/captions/en.vtt"
    assert metadata.captions[1].url == "https://files.example.com/es.vtt"
    _, _, kwargs = session.calls[0]
    assert kwargs["headers"]["AccessKey"] == "api-key"
    assert kwargs["timeout"] == 30


def test_get_video_result_variants(client, session):
    session.routes[API_URL] = FakeResponse(404)
    assert isinstance(client.get_video(VIDEO_ID), NotFound)

    session.routes[API_URL] = FakeResponse(500, "boom")
    error = client.get_video(VIDEO_ID)
    assert isinstance(error, VendorError)
    assert error.status_code == 500

    session.routes[API_URL] = FakeResponse(200, "not json")
    assert isinstance(client.get_video(VIDEO_ID), VendorError)

    session.routes[API_URL] = timeout_error
    assert isinstance(client.get_video(VIDEO_ID), VendorError)


def test_get_video_without_credentials():
    session = FakeSession()
    client = BunnyClient(BunnyConfig(library_id="42"), session=session)
    result = client.get_video(VIDEO_ID)
    assert isinstance(result, VendorError)
    assert "BUNNY_API_KEY" in result.detail
    assert session.calls == []


def test_transport_policy_retries_connection_errors(bunny_config):
    attempts = []

    def flaky(url, **kwargs):
        attempts.append(url)
        if len(attempts) == 1:
            raise requests.ConnectionError("reset")
        return FakeResponse(200, "WEBVTT\n")

    session = FakeSession({"https://files.example.com/en.vtt": flaky})
    client = BunnyClient(
        bunny_config,
        session=session,
        transport_policy=RetryPolicy(max_attempts=2, delay=0.0, retry_on=(requests.ConnectionError,)),
        sleep=lambda _: None,
    )

    result = client.fetch_text("https://files.example.com/en.vtt")

    assert isinstance(result, Success)
    assert len(attempts) == 2


def test_storage_caption_url_carries_access_key(client):
    url = client.storage_caption_url(VIDEO_ID, "ES.vtt")
    assert url == f"{STORAGE}/ES.vtt?accessKey=storage-key"


def test_embed_and_hls_urls(client):
    assert client.get_embed_url(VIDEO_ID) == f"https://iframe.mediadelivery.net/embed/42/{VIDEO_ID}"
    assert client.get_hls_url(VIDEO_ID) == f"https://stream.example.com/{VIDEO_ID}/playlist.m3u8"


def test_candidate_filenames_order():
    assert candidate_filenames("es") == ["ES.vtt", "es.vtt", "ES.srt", "es.srt"]


def test_is_valid_caption_content():
    assert is_valid_caption_content("WEBVTT\n\n00:00:01.000 --> 00:00:02.000\nHi")
    assert is_valid_caption_content(SRT_BODY)
    assert is_valid_caption_content("00:04:04.040 --> 00:04:05.000\nHi")

    assert not is_valid_caption_content("")
    assert not is_valid_caption_content("   ")
    assert not is_valid_caption_content("<!DOCTYPE html><html><body>Not found</body></html>")
    assert not is_valid_caption_content('{"HttpCode": 404, "Message": "Object Not Found"}')
    assert not is_valid_caption_content("404 Not Found")
    assert not is_valid_caption_content("Error: File Not Found")
    assert not is_valid_caption_content("just some text")


def test_probe_short_circuits_on_first_valid_candidate(client, session):
    session.routes[f"{STORAGE}/es.vtt"] = FakeResponse(200, "<html>Not found</html>")
    session.routes[f"{STORAGE}/ES.srt"] = FakeResponse(200, SRT_BODY)
    session.routes[f"{STORAGE}/es.srt"] = FakeResponse(200, SRT_BODY)

    source = probe_storage_captions(client, VIDEO_ID, "es")

    assert source is not None
    assert source.method == METHOD_STORAGE_DIRECT
    assert source.url == f"{STORAGE}/ES.srt?accessKey=storage-key"
    assert source.content == SRT_BODY
    assert session.urls() == [f"{STORAGE}/ES.vtt", f"{STORAGE}/es.vtt", f"{STORAGE}/ES.srt"]
    assert all(kwargs["timeout"] == 10 for _, _, kwargs in session.calls)


def test_probe_returns_none_when_nothing_matches(client, session):
    session.routes[f"{STORAGE}/ES.vtt"] = timeout_error
    assert probe_storage_captions(client, VIDEO_ID, "es") is None
    assert len(session.calls) == 4


def test_probe_stops_when_cancelled(client, session):
    cancel = threading.Event()
    cancel.set()
    assert probe_storage_captions(client, VIDEO_ID, "es", cancel_event=cancel) is None
    assert session.calls == []


def test_upload_captions_posts_vtt(client, session):
    session.routes[f"{API_URL}/captions"] = FakeResponse(200, json_data={"success": True})

    result = client.upload_captions(VIDEO_ID, "WEBVTT\n\n", "es")

    assert result == Success(f"https://cdn.example.com/{VIDEO_ID}/captions/es.vtt", status_code=200)
    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url == f"{API_URL}/captions"
    assert kwargs["json"] == {"srclang": "es", "label": "Spanish", "content": "WEBVTT\n\n"}
    assert kwargs["headers"]["AccessKey"] == "api-key"


def test_upload_captions_failures(client, session, bunny_config):
    session.routes[f"{API_URL}/captions"] = FakeResponse(400, "Invalid srclang")
    result = client.upload_captions(VIDEO_ID, "WEBVTT\n\n", "xx", label="Custom")
    assert isinstance(result, VendorError)
    assert result.status_code == 400
    assert session.calls[0][2]["json"]["label"] == "Custom"

    session.routes[f"{API_URL}/captions"] = requests.ConnectionError("reset")
    assert isinstance(client.upload_captions(VIDEO_ID, "WEBVTT\n\n"), VendorError)

    no_key = BunnyClient(BunnyConfig(library_id="42"), session=FakeSession())
    assert isinstance(no_key.upload_captions(VIDEO_ID, "WEBVTT\n\n"), VendorError)
    assert no_key.session.calls == []
