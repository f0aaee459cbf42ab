"""Exception hierarchy for captionkit."""

from typing import Optional


class CaptionkitError(RuntimeError):
    """Base error carrying a numeric code for callers that map errors to statuses."""

    code = 1

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class VendorRequestError(CaptionkitError):
    """A vendor REST call failed (network error or unexpected status)."""

    code = 2

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CaptionsUnavailableError(CaptionkitError):
    """No caption language resolved and the metadata lookup itself failed."""

    code = 3

    def __init__(self, video_id: str, detail: str) -> None:
        super().__init__(f"Captions unavailable for video {video_id}: {detail}")
        self.video_id = video_id
        self.detail = detail


class TranslationError(CaptionkitError):
    code = 4


class PlaybackError(CaptionkitError):
    code = 5


class PlaybackFatalError(PlaybackError):
    """Playback cannot continue; internal retries have stopped."""

    code = 6


class PlaybackTransientError(PlaybackError):
    """Recoverable hiccup; retried or logged internally, never surfaced."""

    code = 7


class PlayerNotReadyError(PlaybackError):
    code = 8
