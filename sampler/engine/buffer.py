"""SampleBuffer — the in-memory audio the editor works on."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass
class SampleBuffer:
    """Decoded PCM: one float32 row per channel, shape (channels, frames).

    Samples are nominally in [-1, 1] but are not clamped until encode.
    Edits never mutate a buffer another reader may hold; they build a new one.
    """

    data: np.ndarray
    sample_rate: int

    def __post_init__(self):
        data = np.asarray(self.data, dtype=np.float32)
        if data.ndim != 2:
            raise ValueError(f"SampleBuffer data must be (channels, frames), got rank {data.ndim}")
        if data.shape[0] < 1:
            raise ValueError("SampleBuffer needs at least one channel")
        self.data = data
        self.sample_rate = int(self.sample_rate)

    @classmethod
    def zeros(cls, channels: int, frames: int, sample_rate: int) -> SampleBuffer:
        return cls(np.zeros((channels, frames), dtype=np.float32), sample_rate)

    @classmethod
    def from_channels(cls, channels, sample_rate: int) -> SampleBuffer:
        """Build from a list of per-channel sample sequences (equal length)."""
        rows = [np.asarray(ch, dtype=np.float32) for ch in channels]
        lengths = {len(r) for r in rows}
        if len(lengths) > 1:
            raise ValueError(f"channel lengths differ: {sorted(lengths)}")
        return cls(np.stack(rows) if rows else np.zeros((0, 0)), sample_rate)

    @classmethod
    def from_interleaved(cls, audio: np.ndarray, sample_rate: int) -> SampleBuffer:
        """From (frames,) mono or (frames, channels) arrays as scipy/soundfile return them."""
        audio = np.asarray(audio)
        if audio.ndim == 1:
            audio = audio[:, None]
        return cls(np.ascontiguousarray(audio.T, dtype=np.float32), sample_rate)

    @property
    def channel_count(self) -> int:
        return self.data.shape[0]

    @property
    def frame_count(self) -> int:
        return self.data.shape[1]

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate

    def channel(self, index: int) -> np.ndarray:
        return self.data[index]

    def copy(self) -> SampleBuffer:
        return SampleBuffer(self.data.copy(), self.sample_rate)

    def like(self, frames: int | None = None) -> SampleBuffer:
        """Silent buffer with the same channel count and rate."""
        n = self.frame_count if frames is None else frames
        return SampleBuffer.zeros(self.channel_count, n, self.sample_rate)

    def to_frame(self, seconds: float) -> int:
        return int(np.floor(seconds * self.sample_rate))

    def region_frames(self, start_seconds: float, end_seconds: float) -> tuple[int, int]:
        """Frame bounds of a time region, clamped to the buffer.

        The pair may be degenerate (end <= start); callers treat that as a no-op.
        """
        start = min(max(self.to_frame(start_seconds), 0), self.frame_count)
        end = min(max(self.to_frame(end_seconds), 0), self.frame_count)
        return start, end

    def equals(self, other: SampleBuffer) -> bool:
        return (self.sample_rate == other.sample_rate
                and self.data.shape == other.data.shape
                and np.array_equal(self.data, other.data))
