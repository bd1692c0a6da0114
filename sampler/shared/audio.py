"""Audio file I/O for the editor.

Provides load_sample (any format libsndfile reads) and save_wav (the editor's
own 16-bit encoder), plus make_impulse for tests and previews.
"""

import numpy as np
import soundfile as sf

from sampler.engine.buffer import SampleBuffer
from sampler.engine.wav import encode_wav


def load_sample(path) -> SampleBuffer:
    """Decode an audio file into a float32 SampleBuffer at its native rate."""
    data, sr = sf.read(path, dtype='float32', always_2d=True)
    return SampleBuffer.from_interleaved(data, sr)


def save_wav(path, buffer: SampleBuffer):
    """Write the buffer as a 16-bit PCM WAV file (no normalization)."""
    with open(path, "wb") as f:
        f.write(encode_wav(buffer))


def make_impulse(sr=44100, seconds=0.5, channels=1) -> SampleBuffer:
    """Unit impulse (click) at frame 0."""
    n = int(sr * seconds)
    impulse = np.zeros((channels, n), dtype=np.float32)
    impulse[:, 0] = 1.0
    return SampleBuffer(impulse, sr)
