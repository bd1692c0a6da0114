"""Circular buffer delay line with regenerative feedback."""

import numpy as np

from sampler.primitives.dsp import feedback_delay


class DelayLine:
    """Multichannel circular buffer that returns only the delayed (wet) signal.

    The delayed output is scaled by `feedback` and added back to the input
    before it is written, so every echo spawns the next one.

    Usage:
        dl = DelayLine(max_delay=44100, delay=13230, feedback=0.5)
        wet = dl.process(block)     # block: (channels, frames) float32
    """

    def __init__(self, max_delay: int, delay: int, feedback: float = 0.5):
        self.max_delay = max(1, int(max_delay))
        self.feedback = float(feedback)
        self.delay = 1
        self.set_delay(delay)
        self.ring = None
        self.write_idx = 0

    def set_delay(self, delay: int):
        """Delay in frames. Minimum one frame; grows the buffer if needed."""
        delay = max(1, int(delay))
        if delay > self.max_delay:
            self.max_delay = delay
            self.ring = None
        self.delay = delay

    def process(self, block: np.ndarray) -> np.ndarray:
        if self.ring is None or self.ring.shape[0] != block.shape[0]:
            self.ring = np.zeros((block.shape[0], self.max_delay + 1), dtype=np.float64)
            self.write_idx = 0
        out, self.write_idx = feedback_delay(block, self.ring, self.write_idx,
                                             self.delay, self.feedback)
        return out

    def reset(self):
        """Clear the buffer."""
        self.ring = None
        self.write_idx = 0
