"""LiveChain — the persistent monitoring graph of one player session.

Topology (CLEAN):
    source -> eq_input -> eq_32 -> eq_64 -> ... -> eq_16000 -> master -> output

Topology (PREVIEW, distortion / bitcrush):
    source -> preview -> eq_input -> ...

Topology (PREVIEW, delay), dry and wet summed at eq_input:
    source -> eq_input -> ...
    source -> preview -> eq_input

Every state change (open a preview, close it, freeze, load a new buffer)
calls rebuild(): all links are dropped and the topology for the new state is
wired from scratch. EQ filters are the same objects across rebuilds, so
their gains survive; the preview stage is created fresh per activation.
"""

import logging
from enum import Enum

from sampler.engine.effects import make_distortion_curve
from sampler.engine.graph import RoutingGraph, chain_links
from sampler.engine.params import (
    EQ_BANDS, EQ_Q, RENDER_EFFECTS, SR, band_shape, resolve_params,
)
from sampler.engine.stages import Gain, ParametricFilter, Passthrough, make_effect_stage

log = logging.getLogger(__name__)

SOURCE = "source"
PREVIEW = "preview"
EQ_INPUT = "eq_input"
MASTER = "master"
OUTPUT = "output"


class ChainState(Enum):
    CLEAN = "clean"
    PREVIEW = "preview"


def band_name(freq) -> str:
    return f"eq_{freq}"


class LiveChain:
    """Source -> optional live effect -> 10-band EQ -> master level -> output."""

    def __init__(self, sample_rate: int = SR, bands=EQ_BANDS):
        self.sample_rate = int(sample_rate)
        self.graph = RoutingGraph(source=SOURCE, sink=OUTPUT)
        self.source = Passthrough()
        self.eq_input = Gain(1.0)
        self.bands = list(bands)
        self.filters = [
            ParametricFilter(freq, EQ_Q, 0.0, band_shape(freq), self.sample_rate)
            for freq in self.bands
        ]
        self.master = Gain(1.0)
        self.output = Passthrough()

        self.preview_stage = None
        self.preview_type: str | None = None
        self.preview_params: dict = {}
        self.rebuild_count = 0
        self.rebuild()

    @property
    def state(self) -> ChainState:
        return ChainState.CLEAN if self.preview_stage is None else ChainState.PREVIEW

    @property
    def lock(self):
        return self.graph.lock

    # ------------------------------------------------------------------
    # Topology
    # ------------------------------------------------------------------

    def topology(self):
        """(stages, links) for the current state."""
        stages = [(SOURCE, self.source)]
        links = []
        if self.preview_stage is not None:
            stages.append((PREVIEW, self.preview_stage))
            links += chain_links([SOURCE, PREVIEW, EQ_INPUT])
            if self.preview_type == "delay":
                links.append((SOURCE, EQ_INPUT))
        else:
            links.append((SOURCE, EQ_INPUT))

        names = [EQ_INPUT] + [band_name(freq) for freq in self.bands] + [MASTER, OUTPUT]
        stages.append((EQ_INPUT, self.eq_input))
        stages += [(band_name(freq), f) for freq, f in zip(self.bands, self.filters)]
        stages += [(MASTER, self.master), (OUTPUT, self.output)]
        links += chain_links(names)
        return stages, links

    def rebuild(self):
        """Disconnect everything and reconnect the topology for the current state."""
        with self.lock:
            stages, links = self.topology()
            self.graph.rebuild(stages, links)
            self.rebuild_count += 1
        log.debug("live chain rebuilt (%s, %d links)", self.state.value, len(links))

    # ------------------------------------------------------------------
    # Preview state machine
    # ------------------------------------------------------------------

    def activate_preview(self, effect_type: str, params: dict | None = None):
        """CLEAN -> PREVIEW(effect_type). An open preview is closed first."""
        if effect_type not in RENDER_EFFECTS:
            raise ValueError(f"No live preview for '{effect_type}'. Options: {list(RENDER_EFFECTS)}")
        with self.lock:
            if self.preview_stage is not None:
                self.close_preview()
            self.preview_params = resolve_params(effect_type, params)
            self.preview_stage = make_effect_stage(effect_type, self.preview_params, self.sample_rate)
            self.preview_type = effect_type
            self.rebuild()
        log.info("live preview on: %s %s", effect_type, self.preview_params)

    def close_preview(self):
        """PREVIEW -> CLEAN. Safe to call when no preview is open."""
        with self.lock:
            self.preview_stage = None
            self.preview_type = None
            self.preview_params = {}
            self.rebuild()

    def set_preview_param(self, key: str, value) -> bool:
        """Update a live effect knob. Returns False when no preview is open.

        A value the stage rejects (ValueError) leaves the previous setting in
        place for both the live stage and a later freeze.
        """
        with self.lock:
            stage = self.preview_stage
            if stage is None:
                return False
            if self.preview_type == "distortion" and key == "amount":
                stage.curve = make_distortion_curve(value)
            elif self.preview_type == "delay" and key == "time":
                stage.set_time(value)
            elif self.preview_type == "delay" and key == "feedback":
                stage.set_feedback(value)
            elif self.preview_type == "bitcrush" and key == "bits":
                stage.set_bits(value)
            elif self.preview_type == "bitcrush" and key == "frequency":
                stage.set_frequency(value)
            self.preview_params[key] = value
            return True

    # ------------------------------------------------------------------
    # EQ and master
    # ------------------------------------------------------------------

    def set_band_gain(self, index: int, gain_db: float):
        with self.lock:
            self.filters[index].set_gain(gain_db)
        log.debug("EQ band %sHz: %sdB", self.filters[index].freq, gain_db)

    def band_gains(self) -> list[float]:
        return [f.gain_db for f in self.filters]

    def set_master_level(self, level: float):
        with self.lock:
            self.master.level = float(level)

    def set_sample_rate(self, sample_rate: int):
        """Follow a newly loaded buffer's rate: redesign filters, drop history."""
        sample_rate = int(sample_rate)
        with self.lock:
            if sample_rate == self.sample_rate:
                return
            self.sample_rate = sample_rate
            for f in self.filters:
                f.biquad.set_sample_rate(sample_rate)
            if self.preview_stage is not None:
                self.preview_stage = make_effect_stage(
                    self.preview_type, self.preview_params, sample_rate)
            self.rebuild()

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def process(self, block):
        """Run one (channels, frames) block through the chain."""
        return self.graph.process(block)

    def reset(self):
        self.graph.reset()
