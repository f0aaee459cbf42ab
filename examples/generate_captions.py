"""
Caption generation example.

Transcribes a video URL with Deepgram, writes one WebVTT file per language
(translating the English track with Google Translate) and uploads each one
back to the Bunny.net video. Needs DEEPGRAM_API_KEY, GOOGLE_TRANSLATE_API_KEY
and the BUNNY_* variables.
"""

from pathlib import Path

from captionkit import (
    BunnyClient,
    BunnyConfig,
    GoogleTranslateConfig,
    GoogleTranslator,
    Success,
    get_backend,
    transcribe_multi_language,
    upload_generated_captions,
)


def main() -> None:
    video_id = "VIDEO_GUID"  # Update to your video
    video_url = f"https://example.b-cdn.net/{video_id}/play_720p.mp4"
    output_dir = Path("local/captions")
    output_dir.mkdir(parents=True, exist_ok=True)

    backend = get_backend("deepgram")
    translator = GoogleTranslator(GoogleTranslateConfig.from_env())

    documents = transcribe_multi_language(
        backend,
        video_url,
        ["en", "es", "pt"],
        source_language="en",
        translate_fn=translator,
    )

    for language, vtt in documents.items():
        path = output_dir / f"{language}.vtt"
        path.write_text(vtt, encoding="utf-8")
        print(f"Wrote {path}")

    uploads = upload_generated_captions(BunnyClient(BunnyConfig.from_env()), video_id, documents)
    for language, result in uploads.items():
        status = result.data if isinstance(result, Success) else f"failed ({result.detail})"
        print(f"Upload {language}: {status}")


if __name__ == "__main__":
    main()
