"""Numba sample-loop kernels shared by offline rendering and the live chain.

Each kernel works on a (channels, frames) float32 block. Kernels that need
history take their state arrays as arguments and update them in place, so a
caller can feed one long signal as many short blocks.
"""

import numpy as np
from numba import njit


@njit(cache=True)
def waveshape(block, curve):
    """Map each sample through a transfer table with linear interpolation.

    Input -1 maps to curve[0], +1 to curve[-1]; anything beyond is held at
    the ends. NaN reads the first entry.
    """
    n_ch, n = block.shape
    out = np.empty((n_ch, n), dtype=np.float32)
    last = len(curve) - 1
    for c in range(n_ch):
        for i in range(n):
            v = 0.5 * last * (block[c, i] + 1.0)
            if not v > 0.0:
                out[c, i] = curve[0]
            elif v >= last:
                out[c, i] = curve[last]
            else:
                k = int(v)
                frac = v - k
                out[c, i] = curve[k] + frac * (curve[k + 1] - curve[k])
    return out


@njit(cache=True)
def feedback_delay(block, ring, write_idx, delay, feedback):
    """Wet output of a delay line whose output is fed back into its input.

    ring:  (channels, size) circular buffer, size > delay
    Returns (wet block, new write index).
    """
    n_ch, n = block.shape
    size = ring.shape[1]
    out = np.empty((n_ch, n), dtype=np.float32)
    w = write_idx
    for c in range(n_ch):
        w = write_idx
        for i in range(n):
            rd = (w - delay) % size
            delayed = ring[c, rd]
            ring[c, w] = block[c, i] + feedback * delayed
            out[c, i] = delayed
            w = (w + 1) % size
    return out, w


@njit(cache=True)
def crush_hold(block, step, hold, counters, held):
    """Quantize to multiples of step, then sample-and-hold for `hold` frames.

    Works in place on block. counters/held carry the hold phase and the
    last quantized value per channel across calls.
    """
    n_ch, n = block.shape
    for c in range(n_ch):
        count = counters[c]
        last = held[c]
        for i in range(n):
            if count == 0:
                last = np.floor(block[c, i] / step + 0.5) * step
            block[c, i] = last
            count += 1
            if count >= hold:
                count = 0
        counters[c] = count
        held[c] = last
