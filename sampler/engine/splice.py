"""Cutting buffers apart and putting rendered clips back (trim, extract, freeze)."""

import numpy as np

from sampler.engine.buffer import SampleBuffer


def slice_buffer(buffer: SampleBuffer, start_ratio: float, end_ratio: float) -> SampleBuffer | None:
    """New buffer holding [start_ratio, end_ratio) of the source.

    Ratios are fractions of the frame count, rounded down to frames.
    Returns None when the slice would be empty.
    """
    start = int(np.floor(start_ratio * buffer.frame_count))
    end = int(np.floor(end_ratio * buffer.frame_count))
    if end - start <= 0:
        return None
    start = max(start, 0)
    return SampleBuffer(buffer.data[:, start:end].copy(), buffer.sample_rate)


def extract_clip(buffer: SampleBuffer, start_frame: int, end_frame: int) -> SampleBuffer:
    """Isolated copy of frames [start_frame, end_frame) for offline rendering."""
    return SampleBuffer(buffer.data[:, start_frame:end_frame].copy(), buffer.sample_rate)


def merge_clip(full: SampleBuffer, clip: SampleBuffer, start_frame: int,
               volume: float = 1.0) -> SampleBuffer:
    """Freeze a clip into a copy of `full` starting at start_frame.

    Frames outside [start_frame, start_frame + clip.frame_count) are copied
    untouched. `volume` scales only the written range, so a previewed wet
    level can be baked in.
    """
    end_frame = start_frame + clip.frame_count
    if start_frame < 0 or end_frame > full.frame_count:
        raise ValueError(f"clip [{start_frame}, {end_frame}) does not fit in "
                         f"{full.frame_count} frames")
    if clip.channel_count != full.channel_count:
        raise ValueError(f"clip has {clip.channel_count} channels, "
                         f"buffer has {full.channel_count}")
    out = full.copy()
    if volume == 1.0:
        out.data[:, start_frame:end_frame] = clip.data
    else:
        out.data[:, start_frame:end_frame] = clip.data * np.float32(volume)
    return out
