"""
Caption resolution example.

Looks up the caption tracks of a Bunny.net video in English, Spanish and
Portuguese and prints the first cues of each track. Reads credentials from
BUNNY_* environment variables.
"""

import logging
import sys

from captionkit import BunnyClient, BunnyConfig, CaptionResolver, CaptionsUnavailableError, CueTrackStore


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    video_id = sys.argv[1] if len(sys.argv) > 1 else "VIDEO_GUID"

    client = BunnyClient(BunnyConfig.from_env())
    resolver = CaptionResolver(client)
    store = CueTrackStore()
    store.subscribe(lambda tracks: print(f"Store updated: {sorted(tracks)}"))

    try:
        result = resolver.load(store, video_id, ["en", "es", "pt"])
    except CaptionsUnavailableError as e:
        print(f"Captions unavailable: {e}")
        return

    print(f"Available: {result.available_languages}")
    print(f"Missing: {result.missing}")
    for language, cues in result.tracks.items():
        print(f"\n[{language}] {len(cues)} cues from {result.sources[language].method}")
        for cue in cues[:3]:
            print(f"  {cue.start:7.2f} -> {cue.end:7.2f}  {cue.text}")


if __name__ == "__main__":
    main()
