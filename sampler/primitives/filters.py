"""Biquad design (RBJ cookbook) and a stateful multichannel biquad.

Coefficients follow the same formulas browser audio engines use for their
peaking / lowshelf / highshelf filter nodes, so an EQ setting sounds the
same here as in the host player.
"""

import numpy as np
from scipy.signal import lfilter


def _w0(freq, sr):
    freq = np.clip(freq, 1.0, sr / 2.0 - 1.0)
    return 2.0 * np.pi * freq / sr


def peaking(freq, q, gain_db, sr):
    """Bell boost/cut around freq. Returns normalised (b, a)."""
    A = 10.0 ** (gain_db / 40.0)
    w0 = _w0(freq, sr)
    alpha = np.sin(w0) / (2.0 * q)
    cos_w0 = np.cos(w0)
    b = np.array([1.0 + alpha * A, -2.0 * cos_w0, 1.0 - alpha * A])
    a = np.array([1.0 + alpha / A, -2.0 * cos_w0, 1.0 - alpha / A])
    return b / a[0], a / a[0]


def low_shelf(freq, gain_db, sr):
    """Low shelf — boost/cut below freq (shelf slope 1)."""
    A = 10.0 ** (gain_db / 40.0)
    w0 = _w0(freq, sr)
    alpha = np.sin(w0) / 2.0 * np.sqrt(2.0)
    cos_w0 = np.cos(w0)
    two_sqrt_A_alpha = 2.0 * np.sqrt(A) * alpha
    b = np.array([
        A * ((A + 1) - (A - 1) * cos_w0 + two_sqrt_A_alpha),
        2.0 * A * ((A - 1) - (A + 1) * cos_w0),
        A * ((A + 1) - (A - 1) * cos_w0 - two_sqrt_A_alpha),
    ])
    a = np.array([
        (A + 1) + (A - 1) * cos_w0 + two_sqrt_A_alpha,
        -2.0 * ((A - 1) + (A + 1) * cos_w0),
        (A + 1) + (A - 1) * cos_w0 - two_sqrt_A_alpha,
    ])
    return b / a[0], a / a[0]


def high_shelf(freq, gain_db, sr):
    """High shelf — boost/cut above freq (shelf slope 1)."""
    A = 10.0 ** (gain_db / 40.0)
    w0 = _w0(freq, sr)
    alpha = np.sin(w0) / 2.0 * np.sqrt(2.0)
    cos_w0 = np.cos(w0)
    two_sqrt_A_alpha = 2.0 * np.sqrt(A) * alpha
    b = np.array([
        A * ((A + 1) + (A - 1) * cos_w0 + two_sqrt_A_alpha),
        -2.0 * A * ((A - 1) + (A + 1) * cos_w0),
        A * ((A + 1) + (A - 1) * cos_w0 - two_sqrt_A_alpha),
    ])
    a = np.array([
        (A + 1) - (A - 1) * cos_w0 + two_sqrt_A_alpha,
        2.0 * ((A - 1) - (A + 1) * cos_w0),
        (A + 1) - (A - 1) * cos_w0 - two_sqrt_A_alpha,
    ])
    return b / a[0], a / a[0]


DESIGNS = {
    "peaking": lambda freq, q, gain_db, sr: peaking(freq, q, gain_db, sr),
    "lowshelf": lambda freq, q, gain_db, sr: low_shelf(freq, gain_db, sr),
    "highshelf": lambda freq, q, gain_db, sr: high_shelf(freq, gain_db, sr),
}


class BiquadFilter:
    """Second-order section over (channels, frames) blocks.

    State (two delay elements per channel) persists between process() calls,
    so consecutive blocks filter as one continuous signal. A block with a
    different channel count starts from silence.
    """

    def __init__(self, shape, freq, q=1.0, gain_db=0.0, sr=44100):
        if shape not in DESIGNS:
            raise ValueError(f"Unknown filter shape '{shape}'. Options: {list(DESIGNS)}")
        self.shape = shape
        self.freq = float(freq)
        self.q = float(q)
        self.gain_db = float(gain_db)
        self.sr = int(sr)
        self._zi = None
        self._design()

    def _design(self):
        self.b, self.a = DESIGNS[self.shape](self.freq, self.q, self.gain_db, self.sr)

    def set_gain(self, gain_db):
        self.gain_db = float(gain_db)
        self._design()

    def set_sample_rate(self, sr):
        if int(sr) != self.sr:
            self.sr = int(sr)
            self._design()
            self.reset()

    def process(self, block: np.ndarray) -> np.ndarray:
        if self._zi is None or self._zi.shape[0] != block.shape[0]:
            self._zi = np.zeros((block.shape[0], 2))
        out, self._zi = lfilter(self.b, self.a, block, axis=-1, zi=self._zi)
        return out.astype(np.float32)

    def reset(self):
        self._zi = None
