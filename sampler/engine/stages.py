"""Processing stages — the nodes of a routing graph.

A stage takes one (channels, frames) float32 block and returns the next one.
Stateful stages (filters, delay lines, the crusher's hold phase) keep their
history between calls, so a signal can be pushed through block by block.
"""

from abc import ABC, abstractmethod

import numpy as np

from sampler.engine.effects import crush_step, hold_length, make_distortion_curve
from sampler.engine.params import resolve_params
from sampler.primitives.delay_line import DelayLine
from sampler.primitives.dsp import crush_hold, waveshape
from sampler.primitives.filters import BiquadFilter


class Stage(ABC):
    """Base class for all stages."""

    kind: str = "base"

    @abstractmethod
    def process(self, block: np.ndarray) -> np.ndarray:
        """Return the processed block. Must not modify `block`."""
        ...

    def reset(self):
        """Forget any signal history."""

    def __repr__(self):
        return f"<{type(self).__name__}>"


# Stage registry - populated by the decorator below
_STAGE_REGISTRY: dict[str, type[Stage]] = {}


def register_stage(cls: type[Stage]) -> type[Stage]:
    _STAGE_REGISTRY[cls.kind] = cls
    return cls


def get_stage_kinds() -> list[str]:
    return list(_STAGE_REGISTRY.keys())


def create_stage(kind: str, **kwargs) -> Stage:
    return _STAGE_REGISTRY[kind](**kwargs)


@register_stage
class Passthrough(Stage):
    """Identity. Used for graph sources, sinks and bypassed effects."""

    kind = "passthrough"

    def process(self, block):
        return block


@register_stage
class Gain(Stage):
    kind = "gain"

    def __init__(self, level: float = 1.0):
        self.level = float(level)

    def process(self, block):
        if self.level == 1.0:
            return block
        return block * np.float32(self.level)


@register_stage
class ParametricFilter(Stage):
    """One EQ band: peaking, lowshelf or highshelf biquad."""

    kind = "filter"

    def __init__(self, freq: float, q: float = 1.0, gain_db: float = 0.0,
                 shape: str = "peaking", sr: int = 44100):
        self.biquad = BiquadFilter(shape, freq, q, gain_db, sr)

    @property
    def freq(self):
        return self.biquad.freq

    @property
    def gain_db(self):
        return self.biquad.gain_db

    @property
    def shape(self):
        return self.biquad.shape

    def set_gain(self, gain_db: float):
        self.biquad.set_gain(gain_db)

    def process(self, block):
        return self.biquad.process(block)

    def reset(self):
        self.biquad.reset()


@register_stage
class FeedbackDelay(Stage):
    """Wet-only delay line with feedback. Wire a dry path beside it to mix."""

    kind = "delay"

    def __init__(self, time: float = 0.3, feedback: float = 0.5, sr: int = 44100,
                 max_time: float = 1.0):
        self.sr = int(sr)
        self.time = float(time)
        self.line = DelayLine(max_delay=int(max(max_time, time) * self.sr),
                              delay=int(self.time * self.sr), feedback=feedback)

    @property
    def feedback(self):
        return self.line.feedback

    def set_time(self, time: float):
        self.time = float(time)
        self.line.set_delay(int(self.time * self.sr))

    def set_feedback(self, feedback: float):
        self.line.feedback = float(feedback)

    def process(self, block):
        return self.line.process(block)

    def reset(self):
        self.line.reset()


@register_stage
class NonlinearShaper(Stage):
    """Waveshaper driven by a transfer table (see make_distortion_curve)."""

    kind = "shaper"

    def __init__(self, curve: np.ndarray):
        self.curve = np.asarray(curve, dtype=np.float32)

    def process(self, block):
        return waveshape(block, self.curve)


@register_stage
class BitCrush(Stage):
    """Quantize-and-hold, continuing the hold window across blocks."""

    kind = "bitcrush"

    def __init__(self, bits: int = 8, frequency: float = 0.25):
        self.bits = bits
        self.frequency = frequency
        self.hold = hold_length(frequency)
        self._counters = None
        self._held = None

    def set_bits(self, bits):
        self.bits = bits

    def set_frequency(self, frequency):
        self.hold = hold_length(frequency)
        self.frequency = frequency

    def process(self, block):
        n_ch = block.shape[0]
        if self._counters is None or len(self._counters) != n_ch:
            self._counters = np.zeros(n_ch, dtype=np.int64)
            self._held = np.zeros(n_ch, dtype=np.float64)
        out = np.array(block, dtype=np.float32, copy=True)
        crush_hold(out, crush_step(self.bits), self.hold, self._counters, self._held)
        return out

    def reset(self):
        self._counters = None
        self._held = None


def make_effect_stage(effect_type: str, params: dict | None, sr: int) -> Stage:
    """Build the live/offline stage for an effect.

    For bitcrush the offline graph uses a Passthrough instead and crushes
    after rendering; see render.render_clip.
    """
    p = resolve_params(effect_type, params)
    if effect_type == "distortion":
        return NonlinearShaper(make_distortion_curve(p["amount"]))
    if effect_type == "delay":
        return FeedbackDelay(time=p["time"], feedback=p["feedback"], sr=sr)
    if effect_type == "bitcrush":
        return BitCrush(bits=p["bits"], frequency=p["frequency"])
    raise ValueError(f"No stage for effect type '{effect_type}'.")
