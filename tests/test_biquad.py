"""Test the EQ biquads — shelf and peaking response, block continuity.

Run: uv run pytest tests/test_biquad.py

Gains are measured as steady-state RMS ratios on sine tones.
"""

import numpy as np
import os
import pytest
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from sampler.primitives.filters import BiquadFilter, high_shelf, low_shelf, peaking

SR = 44100


def make_sine(freq, seconds=0.5, channels=1):
    t = np.arange(int(SR * seconds)) / SR
    tone = (0.5 * np.sin(2 * np.pi * freq * t)).astype(np.float32)
    return np.tile(tone, (channels, 1))


def rms_gain(filt, signal, settle=4410):
    out = filt.process(signal)
    return np.sqrt(np.mean(out[:, settle:] ** 2)) / np.sqrt(np.mean(signal[:, settle:] ** 2))


# ---------------------------------------------------------------------------
# Test 1: flat settings are transparent
# ---------------------------------------------------------------------------
def test_zero_gain_coefficients_cancel():
    for b, a in [peaking(1000, 1.0, 0.0, SR), low_shelf(32, 0.0, SR), high_shelf(16000, 0.0, SR)]:
        np.testing.assert_allclose(b, a, atol=1e-12)


def test_flat_filter_passes_signal():
    rng = np.random.default_rng(0)
    noise = rng.uniform(-0.5, 0.5, (2, 4096)).astype(np.float32)
    for shape in ["peaking", "lowshelf", "highshelf"]:
        out = BiquadFilter(shape, 1000, 1.0, 0.0, SR).process(noise)
        assert out.dtype == np.float32
        np.testing.assert_allclose(out, noise, atol=1e-5)


# ---------------------------------------------------------------------------
# Test 2: boost and cut land where they should
# ---------------------------------------------------------------------------
def test_peaking_gain_at_centre():
    filt = BiquadFilter("peaking", 1000, 1.0, 6.0, SR)
    assert rms_gain(filt, make_sine(1000)) == pytest.approx(10 ** (6 / 20), rel=0.03)


def test_low_shelf_boosts_lows_only():
    assert rms_gain(BiquadFilter("lowshelf", 500, gain_db=12.0), make_sine(50)) > 3.5
    assert rms_gain(BiquadFilter("lowshelf", 500, gain_db=12.0), make_sine(10000)) == pytest.approx(1.0, abs=0.05)


def test_high_shelf_cuts_highs_only():
    assert rms_gain(BiquadFilter("highshelf", 2000, gain_db=-12.0), make_sine(12000)) < 0.35
    assert rms_gain(BiquadFilter("highshelf", 2000, gain_db=-12.0), make_sine(60)) == pytest.approx(1.0, abs=0.05)


def test_set_gain_redesigns():
    filt = BiquadFilter("peaking", 1000, 1.0, 0.0, SR)
    filt.set_gain(-6.0)
    assert filt.gain_db == -6.0
    assert rms_gain(filt, make_sine(1000)) == pytest.approx(10 ** (-6 / 20), rel=0.03)


# ---------------------------------------------------------------------------
# Test 3: state carries across blocks
# ---------------------------------------------------------------------------
def test_blocks_filter_like_one_signal():
    rng = np.random.default_rng(1)
    noise = rng.uniform(-0.5, 0.5, (2, 1000)).astype(np.float32)

    whole = BiquadFilter("peaking", 250, 1.0, 9.0, SR).process(noise)

    filt = BiquadFilter("peaking", 250, 1.0, 9.0, SR)
    parts = [filt.process(noise[:, i:i + 128]) for i in range(0, 1000, 128)]
    np.testing.assert_allclose(np.concatenate(parts, axis=1), whole, atol=1e-6)


def test_unknown_shape_rejected():
    with pytest.raises(ValueError):
        BiquadFilter("notch", 1000)
