from types import SimpleNamespace

import pytest

from captionkit.errors import VendorRequestError
from captionkit.models import DeepgramConfig, Success, VendorError, WordTimestamp
from captionkit.subtitles import parse_captions
from captionkit.transcription import (
    DeepgramClient,
    FasterWhisperBackend,
    TranscriptionBackend,
    extract_transcript,
    extract_words,
    get_backend,
    synthesize_webvtt,
    transcribe_multi_language,
    upload_generated_captions,
)

from fakes import FakeResponse, FakeSession

LISTEN_URL = "https://api.deepgram.com/v1/listen"


def deepgram_payload(words, transcript=None, paragraphs=None):
    alternative = {"words": words}
    if transcript is not None:
        alternative["transcript"] = transcript
    if paragraphs is not None:
        alternative["paragraphs"] = {"transcript": paragraphs}
    return {"results": {"channels": [{"alternatives": [alternative]}]}}


def test_synthesize_splits_on_word_count():
    words = [WordTimestamp(f"w{i}", i * 0.3, i * 0.3 + 0.2) for i in range(20)]

    vtt = synthesize_webvtt(words, "en")

    expected_first = " ".join(f"w{i}" for i in range(15))
    expected_second = " ".join(f"w{i}" for i in range(15, 20))
    assert vtt == (
        "WEBVTT\nLanguage: en\n\n"
        f"1\n00:00:00.000 --> 00:00:04.400\n{expected_first}\n\n"
        f"2\n00:00:04.500 --> 00:00:05.900\n{expected_second}\n\n"
    )


def test_synthesize_splits_on_duration():
    words = [WordTimestamp(f"w{i}", float(i), i + 0.5) for i in range(10)]

    cues = parse_captions(synthesize_webvtt(words, "en"))

    assert (cues[0].start, cues[0].end) == (0.0, 7.5)
    assert len(cues[0].text.split()) == 8
    assert cues[1].text == "w8 w9"


def test_synthesize_empty_input():
    assert synthesize_webvtt([], "es") == "WEBVTT\n\n"


def test_synthesize_without_language_omits_header_line():
    vtt = synthesize_webvtt([WordTimestamp("hi", 0.0, 0.5)], None)
    assert vtt == "WEBVTT\n\n1\n00:00:00.000 --> 00:00:00.500\nhi\n\n"
    assert "Language" not in vtt


def test_extract_words_prefers_plain_word():
    payload = deepgram_payload([
        {"word": "hello", "punctuated_word": "Hello,", "start": 0.1, "end": 0.4},
        {"punctuated_word": "World.", "start": 0.5, "end": 0.9},
        {"word": "orphan"},
    ])

    words = extract_words(payload)

    assert words == [
        WordTimestamp("hello", 0.1, 0.4),
        WordTimestamp("World.", 0.5, 0.9),
    ]
    assert extract_words({}) == []


def test_extract_transcript_fallbacks():
    words = [{"word": "hi", "punctuated_word": "Hi.", "start": 0.0, "end": 0.2}]
    assert extract_transcript(deepgram_payload(words, "plain", " From paragraphs ")) == "From paragraphs"
    assert extract_transcript(deepgram_payload(words, " plain ")) == "plain"
    assert extract_transcript(deepgram_payload(words)) == "Hi."
    assert extract_transcript({"results": {}}) == ""


def test_deepgram_transcribe_url():
    payload = deepgram_payload(
        [{"word": "hola", "start": 0.0, "end": 0.5}, {"word": "mundo", "start": 0.6, "end": 1.0}],
        paragraphs="Hola mundo.",
    )
    session = FakeSession({LISTEN_URL: FakeResponse(200, json_data=payload)})
    client = DeepgramClient(DeepgramConfig(api_key="dg-key"), session=session)

    result = client.transcribe_url("https://cdn.example.com/video.mp4", language="es")

    assert result.transcript == "Hola mundo."
    assert [w.word for w in result.words] == ["hola", "mundo"]
    assert result.vtt.startswith("WEBVTT\nLanguage: es\n\n1\n00:00:00.000 --> 00:00:01.000\nhola mundo")
    assert result.backend == "deepgram"

    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert kwargs["json"] == {"url": "https://cdn.example.com/video.mp4"}
    assert kwargs["headers"]["Authorization"] == "Token dg-key"
    assert kwargs["params"]["model"] == "nova-2"
    assert kwargs["params"]["language"] == "es"
    assert kwargs["params"]["punctuate"] == "true"
    assert kwargs["params"]["diarize"] == "false"
    assert kwargs["timeout"] == 600


def test_deepgram_errors():
    session = FakeSession({LISTEN_URL: FakeResponse(401, "Invalid credentials")})
    client = DeepgramClient(DeepgramConfig(api_key="bad"), session=session)
    with pytest.raises(VendorRequestError) as excinfo:
        client.transcribe_url("https://cdn.example.com/video.mp4")
    assert excinfo.value.status_code == 401

    with pytest.raises(VendorRequestError):
        DeepgramClient(DeepgramConfig(), session=FakeSession()).transcribe_url("https://x")


def test_faster_whisper_backend_flattens_words():
    segments = [
        SimpleNamespace(words=[
            SimpleNamespace(word=" Hello", start=0.0, end=0.4),
            SimpleNamespace(word=" ", start=0.4, end=0.5),
        ]),
        SimpleNamespace(words=[SimpleNamespace(word=" there", start=0.6, end=None)]),
        SimpleNamespace(words=None),
    ]
    calls = []

    class FakeModel:
        def transcribe(self, source, **kwargs):
            calls.append((source, kwargs))
            return iter(segments), SimpleNamespace(language="en")

    backend = FasterWhisperBackend(model=FakeModel())

    words = backend.transcribe("audio.wav", "en")

    assert words == [WordTimestamp("Hello", 0.0, 0.4), WordTimestamp("there", 0.6, 0.6)]
    assert calls == [("audio.wav", {"language": "en", "word_timestamps": True})]


def test_get_backend():
    assert isinstance(get_backend("deepgram", config=DeepgramConfig(api_key="k")), DeepgramClient)
    assert isinstance(get_backend("faster-whisper", model=object()), FasterWhisperBackend)
    with pytest.raises(ValueError):
        get_backend("nope")


class StaticBackend(TranscriptionBackend):
    def __init__(self, words):
        super().__init__(name="static")
        self.words = words
        self.calls = []

    def transcribe(self, source, language="en"):
        self.calls.append((source, language))
        return self.words


def test_transcribe_multi_language_translates_source_once():
    backend = StaticBackend([WordTimestamp("hello", 0.0, 0.5), WordTimestamp("world", 0.6, 1.0)])

    results = transcribe_multi_language(
        backend,
        "https://cdn.example.com/v.mp4",
        ["en", "es", "pt"],
        source_language="en",
        translate_fn=lambda text, target, source: f"[{target}] {text}",
    )

    assert backend.calls == [("https://cdn.example.com/v.mp4", "en")]
    assert set(results) == {"en", "es", "pt"}
    assert "Language: es" in results["es"]
    assert "[es] hello world" in results["es"]
    source_cues = parse_captions(results["en"])
    translated_cues = parse_captions(results["pt"])
    assert [(c.start, c.end) for c in source_cues] == [(c.start, c.end) for c in translated_cues]


def test_transcribe_multi_language_without_translator():
    backend = StaticBackend([WordTimestamp("hello", 0.0, 0.5)])
    results = transcribe_multi_language(backend, "src", ["en", "es"])
    assert list(results) == ["en"]


def test_upload_generated_captions_reports_each_language(client, session):
    captions_url = "https://video.bunnycdn.com/library/42/videos/video-1/captions"

    def respond(url, **kwargs):
        if kwargs["json"]["srclang"] == "pt":
            return FakeResponse(500, "boom")
        return FakeResponse(200, json_data={"success": True})

    session.routes[captions_url] = respond
    documents = {"en": "WEBVTT\nLanguage: en\n\n", "pt": "WEBVTT\nLanguage: pt\n\n"}

    results = upload_generated_captions(client, "video-1", documents)

    assert isinstance(results["en"], Success)
    assert results["en"].data == "https://cdn.example.com/video-1/captions/en.vtt"
    assert isinstance(results["pt"], VendorError)
    assert [kw["json"]["srclang"] for _, _, kw in session.calls] == ["en", "pt"]
