"""Direct math effects: distortion curve synthesis, bitcrusher, region reverse.

These are pure sample transforms with no graph involved. Reverse is applied
straight to the buffer; the curve and the crusher also feed the offline
render graph and the live preview stages.
"""

import numbers

import numpy as np

from sampler.engine.buffer import SampleBuffer
from sampler.engine.params import CURVE_LENGTH
from sampler.primitives.dsp import crush_hold


def make_distortion_curve(amount=50) -> np.ndarray:
    """Waveshaper transfer table over x in [-1, 1).

    curve[i] = ((3 + k) * x * 20 * deg) / (pi + k * |x|),  x = 2i/N - 1

    k is the drive amount (0-400 is the useful range). Non-numeric amounts
    fall back to 50. The table is odd-symmetric: curve[N - i] == -curve[i].
    """
    k = float(amount) if isinstance(amount, numbers.Number) and not isinstance(amount, bool) else 50.0
    deg = np.pi / 180.0
    x = np.arange(CURVE_LENGTH, dtype=np.float64) * 2.0 / CURVE_LENGTH - 1.0
    curve = ((3.0 + k) * x * 20.0 * deg) / (np.pi + k * np.abs(x))
    return curve.astype(np.float32)


def crush_step(bits) -> float:
    """Quantizer step for a bit depth. bits is used as given (2**bits levels per unit)."""
    return 1.0 / (2.0 ** bits)


def hold_length(frequency) -> int:
    """Frames each quantized value is held: floor(1 / frequency), at least one."""
    if not frequency > 0:
        raise ValueError(f"bitcrush frequency must be > 0, got {frequency}")
    return max(1, int(np.floor(1.0 / frequency)))


def bit_crush(buffer: SampleBuffer, bits, frequency) -> SampleBuffer:
    """Quantize and sample-and-hold every channel of buffer, in place.

    Each held value is floor(x / step + 0.5) * step with step = 1 / 2**bits,
    taken at the first frame of each hold window. Returns the same buffer.
    """
    step = crush_step(bits)
    hold = hold_length(frequency)
    counters = np.zeros(buffer.channel_count, dtype=np.int64)
    held = np.zeros(buffer.channel_count, dtype=np.float64)
    crush_hold(buffer.data, step, hold, counters, held)
    return buffer


def reverse_range(buffer: SampleBuffer, start_frame: int, end_frame: int) -> SampleBuffer:
    """Copy of buffer with frames [start_frame, end_frame) reversed per channel.

    end_frame <= start_frame gives an unmodified copy.
    """
    out = buffer.copy()
    if end_frame > start_frame:
        out.data[:, start_frame:end_frame] = buffer.data[:, start_frame:end_frame][:, ::-1]
    return out
