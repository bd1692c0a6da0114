"""Test live monitoring without a sound device — drives the callback directly.

Run: uv run pytest tests/test_streaming.py
"""

import numpy as np
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from sampler.engine.buffer import SampleBuffer
from sampler.engine.session import EditSession
from sampler.shared.streaming import MonitorStream

SR = 44100


def make_session(frames=1000, channels=1):
    ramp = np.linspace(-0.5, 0.5, frames)
    session = EditSession()
    session.load(SampleBuffer(np.tile(ramp, (channels, 1)), SR))
    return session


def test_callback_plays_buffer_through_chain():
    session = make_session()
    stream = MonitorStream(session, block_size=256)
    outdata = np.zeros((256, 1), dtype=np.float32)
    stream.callback(outdata, 256, None, None)
    np.testing.assert_allclose(outdata[:, 0], session.buffer.data[0, :256], atol=1e-5)
    assert stream.position == 256


def test_mono_buffer_fills_every_output_channel():
    session = make_session()
    stream = MonitorStream(session)
    outdata = np.zeros((64, 2), dtype=np.float32)
    stream.callback(outdata, 64, None, None)
    np.testing.assert_array_equal(outdata[:, 0], outdata[:, 1])


def test_play_to_end_finishes_with_silence():
    session = make_session(frames=100)
    stream = MonitorStream(session)
    block = stream.next_block(150)
    np.testing.assert_array_equal(block[:, :100], session.buffer.data)
    assert np.all(block[:, 100:] == 0.0)
    assert stream.finished


def test_preview_region_loops():
    session = make_session()
    # 0.001 s at 44.1 kHz is 44 frames
    session.activate_preview("distortion", 0.0, 0.001)
    stream = MonitorStream(session)
    block = stream.next_block(100)
    source = session.buffer.data[0]
    np.testing.assert_array_equal(block[0, :44], source[:44])
    np.testing.assert_array_equal(block[0, 44:88], source[:44])
    np.testing.assert_array_equal(block[0, 88:], source[:12])
    assert not stream.finished


def test_empty_session_outputs_silence():
    stream = MonitorStream(EditSession())
    outdata = np.ones((32, 2), dtype=np.float32)
    stream.callback(outdata, 32, None, None)
    assert np.all(outdata == 0.0)
    stream.stop()
