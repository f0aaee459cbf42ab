"""
Embed URL example.

Builds the iframe source for a video, choosing audio and caption tracks
from the viewer's locale.
"""

from captionkit import build_embed_url


def main() -> None:
    url = build_embed_url(
        "https://iframe.mediadelivery.net/play/12345/VIDEO_GUID",
        locale="pt-BR",
        caption_languages=["en", "es", "pt"],
    )
    print(url)


if __name__ == "__main__":
    main()
