"""Test buffer slicing and clip merging (trim, extract, freeze).

Run: uv run pytest tests/test_splice.py
"""

import numpy as np
import os
import pytest
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from sampler.engine.buffer import SampleBuffer
from sampler.engine.splice import extract_clip, merge_clip, slice_buffer

SR = 44100


def make_noise(frames=1000, channels=2, seed=0):
    rng = np.random.default_rng(seed)
    return SampleBuffer(rng.uniform(-1.0, 1.0, (channels, frames)), SR)


# ---------------------------------------------------------------------------
# SampleBuffer basics
# ---------------------------------------------------------------------------
def test_buffer_rejects_bad_shapes():
    with pytest.raises(ValueError):
        SampleBuffer(np.zeros(10), SR)
    with pytest.raises(ValueError):
        SampleBuffer(np.zeros((0, 10)), SR)
    with pytest.raises(ValueError):
        SampleBuffer.from_channels([[0.0, 0.0], [0.0]], SR)


def test_buffer_from_interleaved():
    frames = np.array([[0.1, 0.2], [0.3, 0.4], [0.5, 0.6]])
    buf = SampleBuffer.from_interleaved(frames, SR)
    assert buf.channel_count == 2
    assert buf.frame_count == 3
    np.testing.assert_allclose(buf.channel(1), [0.2, 0.4, 0.6], rtol=1e-6)


def test_region_frames_floor_and_clamp():
    buf = SampleBuffer.zeros(1, 44100, SR)
    assert buf.region_frames(0.5, 0.75) == (22050, 33075)
    assert buf.region_frames(-1.0, 2.0) == (0, 44100)
    assert buf.region_frames(0.9, 0.1) == (39690, 4410)
    assert buf.duration == 1.0


# ---------------------------------------------------------------------------
# Slicing
# ---------------------------------------------------------------------------
def test_full_slice_is_identity():
    buf = make_noise()
    out = slice_buffer(buf, 0.0, 1.0)
    assert out.equals(buf)
    assert out is not buf


def test_slice_rounds_down_to_frames():
    buf = make_noise(frames=10)
    out = slice_buffer(buf, 0.25, 0.75)
    # floor(2.5) = 2, floor(7.5) = 7
    np.testing.assert_array_equal(out.data, buf.data[:, 2:7])


def test_empty_slice_is_none():
    buf = make_noise()
    assert slice_buffer(buf, 0.5, 0.5) is None
    assert slice_buffer(buf, 0.6, 0.4) is None


def test_extract_clip_is_isolated_copy():
    buf = make_noise()
    clip = extract_clip(buf, 100, 200)
    clip.data[:] = 0.0
    assert np.all(buf.data[:, 100:200] != 0.0)


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------
def test_merge_only_writes_clip_range():
    full = make_noise(seed=1)
    clip = make_noise(frames=100, seed=2)
    before = full.data.copy()

    out = merge_clip(full, clip, 300)

    np.testing.assert_array_equal(out.data[:, :300], before[:, :300])
    np.testing.assert_array_equal(out.data[:, 400:], before[:, 400:])
    np.testing.assert_array_equal(out.data[:, 300:400], clip.data)
    np.testing.assert_array_equal(full.data, before)


def test_merge_applies_volume_to_clip_only():
    full = make_noise(seed=1)
    clip = make_noise(frames=50, seed=2)
    out = merge_clip(full, clip, 0, volume=0.5)
    np.testing.assert_array_equal(out.data[:, :50], clip.data * np.float32(0.5))
    np.testing.assert_array_equal(out.data[:, 50:], full.data[:, 50:])


def test_merge_at_end_and_mismatches():
    full = make_noise()
    merge_clip(full, make_noise(frames=10), 990)
    with pytest.raises(ValueError):
        merge_clip(full, make_noise(frames=10), 991)
    with pytest.raises(ValueError):
        merge_clip(full, make_noise(frames=10), -1)
    with pytest.raises(ValueError):
        merge_clip(full, make_noise(frames=10, channels=1), 0)
