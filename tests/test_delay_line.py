"""Test the delay line primitive — echo timing, feedback decay, block continuity.

Run: uv run pytest tests/test_delay_line.py
"""

import numpy as np
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from sampler.primitives.delay_line import DelayLine

SR = 44100


def make_impulse(frames=1000, channels=1):
    """Single sample of 1.0 at the start, rest zeros."""
    signal = np.zeros((channels, frames), dtype=np.float32)
    signal[:, 0] = 1.0
    return signal


# ---------------------------------------------------------------------------
# Test 1: a single echo, no feedback
# ---------------------------------------------------------------------------
def test_single_echo():
    dl = DelayLine(max_delay=SR, delay=100, feedback=0.0)
    wet = dl.process(make_impulse())
    assert wet[0, 100] == 1.0
    assert np.count_nonzero(wet) == 1


# ---------------------------------------------------------------------------
# Test 2: feedback builds a decaying echo train
# ---------------------------------------------------------------------------
def test_feedback_echo_train():
    dl = DelayLine(max_delay=SR, delay=100, feedback=0.5)
    wet = dl.process(make_impulse())
    np.testing.assert_allclose(wet[0, 100:1000:100], 0.5 ** np.arange(9))
    assert np.count_nonzero(wet) == 9


def test_channels_are_independent():
    block = make_impulse(channels=2)
    block[1, 0] = -0.5
    wet = DelayLine(max_delay=SR, delay=10, feedback=0.0).process(block)
    assert wet[0, 10] == 1.0
    assert wet[1, 10] == -0.5


# ---------------------------------------------------------------------------
# Test 3: block-by-block equals one pass
# ---------------------------------------------------------------------------
def test_blocks_match_single_pass():
    rng = np.random.default_rng(0)
    signal = rng.uniform(-1, 1, (2, 1000)).astype(np.float32)

    whole = DelayLine(max_delay=SR, delay=77, feedback=0.6).process(signal)

    dl = DelayLine(max_delay=SR, delay=77, feedback=0.6)
    parts = [dl.process(signal[:, i:i + 128]) for i in range(0, 1000, 128)]
    np.testing.assert_array_equal(np.concatenate(parts, axis=1), whole)


def test_delay_minimum_and_growth():
    dl = DelayLine(max_delay=100, delay=0)
    assert dl.delay == 1
    dl.set_delay(500)
    assert dl.delay == 500
    assert dl.max_delay == 500
    wet = dl.process(make_impulse(frames=600))
    assert wet[0, 500] == 1.0


def test_reset_clears_history():
    dl = DelayLine(max_delay=SR, delay=50, feedback=0.9)
    dl.process(make_impulse(frames=20))
    dl.reset()
    assert np.count_nonzero(dl.process(np.zeros((1, 200), dtype=np.float32))) == 0
