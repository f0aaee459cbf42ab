"""Faster-Whisper backend adapter."""

from typing import Any, List

from ..models import WordTimestamp
from .base import TranscriptionBackend, _get_attr


class FasterWhisperBackend(TranscriptionBackend):
    """Local transcription with faster-whisper, flattened to word timestamps."""

    def __init__(
        self,
        model_name: str = "base",
        device: str = "auto",
        compute_type: str = "default",
        model: Any = None,
    ) -> None:
        super().__init__(name="faster-whisper")
        if model is None:
            from faster_whisper import WhisperModel

            model = WhisperModel(model_name, device=device, compute_type=compute_type)
        self.model = model

    def transcribe(self, source: str, language: str = "en") -> List[WordTimestamp]:
        segments, _info = self.model.transcribe(source, language=language, word_timestamps=True)
        words: List[WordTimestamp] = []
        for segment in segments:
            for word in _get_attr(segment, "words", None) or []:
                text = (_get_attr(word, "word", "") or "").strip()
                start = _get_attr(word, "start", None)
                if not text or start is None:
                    continue
                end = _get_attr(word, "end", None)
                words.append(WordTimestamp(
                    word=text,
                    start=float(start),
                    end=float(end) if end is not None else float(start),
                ))
        return words
