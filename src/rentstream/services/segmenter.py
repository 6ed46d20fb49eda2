"""Splitting uploaded media into segments."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rentstream.services.segment_graph import SegmentPayload


class Segmenter(ABC):
    """Turns a media file into ordered segments."""

    @abstractmethod
    def split(
        self, data: bytes, total_duration_seconds: float | None = None
    ) -> list[SegmentPayload]:
        """Return segments numbered ``0..N-1``."""


class FixedSizeSegmenter(Segmenter):
    """Cuts the input into byte ranges of at most ``max_bytes``.

    Durations are spread proportionally to segment size when the total is
    known, otherwise every segment gets ``default_duration_seconds``.
    """

    def __init__(self, max_bytes: int = 100_000, default_duration_seconds: float = 10.0) -> None:
        if max_bytes < 1:
            raise ValueError("max_bytes must be positive")
        self.max_bytes = max_bytes
        self.default_duration_seconds = default_duration_seconds

    def split(
        self, data: bytes, total_duration_seconds: float | None = None
    ) -> list[SegmentPayload]:
        if not data:
            raise ValueError("Cannot segment empty media")

        chunks = [
            data[offset:offset + self.max_bytes]
            for offset in range(0, len(data), self.max_bytes)
        ]
        segments = []
        for sequence, chunk in enumerate(chunks):
            if total_duration_seconds:
                duration = total_duration_seconds * len(chunk) / len(data)
            else:
                duration = self.default_duration_seconds
            segments.append(
                SegmentPayload(sequence=sequence, data=chunk, duration_seconds=round(duration, 3))
            )
        return segments
