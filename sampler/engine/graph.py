"""RoutingGraph — named stages plus a link table, evaluated block by block.

Used twice: as the bounded offline graph that renders one clip, and as the
persistent live monitoring chain. Fan-in sums its inputs, fan-out shares the
same block, so a dry path next to an effect path mixes at the join.

Rebuild discipline: rebuild() drops every existing link (disconnecting an
already disconnected stage is a no-op), then installs the new stage list and
link table in one swap. Repeating a rebuild with the same topology always
yields the same link table, never duplicated or stale paths.
"""

import logging
import threading
from collections import deque

import numpy as np

from sampler.engine.stages import Stage

log = logging.getLogger(__name__)


class RoutingError(ValueError):
    """Topology that is not a single connected source-to-sink DAG."""


def chain_links(names):
    """Links joining names in order: [(a, b), (b, c), ...]."""
    return list(zip(names[:-1], names[1:]))


class RoutingGraph:
    """Directed acyclic graph of stages from `source` to `sink`."""

    def __init__(self, source: str = "source", sink: str = "output"):
        self.source = source
        self.sink = sink
        self._stages: dict[str, Stage] = {}
        self._links: dict[str, list[str]] = {}
        self._order: list[str] = []
        self._inputs: dict[str, list[str]] = {}
        self.lock = threading.RLock()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def stages(self) -> dict[str, Stage]:
        return dict(self._stages)

    @property
    def links(self) -> list[tuple[str, str]]:
        return [(src, dst) for src, dsts in self._links.items() for dst in dsts]

    def stage(self, name: str) -> Stage:
        return self._stages[name]

    def __contains__(self, name):
        return name in self._stages

    def __len__(self):
        return len(self._stages)

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def connect(self, src: str, dst: str):
        """Add a link. Connecting an existing pair again changes nothing."""
        with self.lock:
            if src not in self._stages or dst not in self._stages:
                raise RoutingError(f"cannot link {src!r} -> {dst!r}: unknown stage")
            outs = self._links.setdefault(src, [])
            if dst not in outs:
                outs.append(dst)
            self._invalidate()

    def disconnect(self, src: str, dst: str | None = None):
        """Remove the outgoing links of src (or just src -> dst).

        Unknown stages and missing links are ignored.
        """
        with self.lock:
            outs = self._links.get(src)
            if not outs:
                return
            if dst is None:
                outs.clear()
            elif dst in outs:
                outs.remove(dst)
            self._invalidate()

    def disconnect_all(self):
        with self.lock:
            for name in list(self._links):
                self.disconnect(name)
            self._links = {}

    def rebuild(self, stages, links):
        """Replace the whole graph: disconnect everything, then wire afresh.

        Args:
            stages: iterable of (name, Stage); must include source and sink
            links:  iterable of (src, dst) names

        Raises RoutingError (leaving the previous graph in place) if the new
        topology has an orphaned stage, a cycle, or no path to the sink.
        """
        new_stages = dict(stages)
        new_links: dict[str, list[str]] = {}
        for src, dst in links:
            if src not in new_stages or dst not in new_stages:
                raise RoutingError(f"cannot link {src!r} -> {dst!r}: unknown stage")
            outs = new_links.setdefault(src, [])
            if dst not in outs:
                outs.append(dst)
        order, inputs = self._plan(new_stages, new_links)

        with self.lock:
            self.disconnect_all()
            self._stages = new_stages
            self._links = new_links
            self._order = order
            self._inputs = inputs
        log.debug("graph rebuilt: %s", " | ".join(f"{s}->{d}" for s, d in self.links))

    def _invalidate(self):
        self._order = []
        self._inputs = {}

    def _plan(self, stages, links):
        """Topological order plus per-stage input lists; validates totality."""
        if self.source not in stages or self.sink not in stages:
            raise RoutingError(f"graph needs both {self.source!r} and {self.sink!r}")

        inputs = {name: [] for name in stages}
        for src, dsts in links.items():
            for dst in dsts:
                inputs[dst].append(src)

        # Kahn's algorithm from the source
        pending = {name: len(ins) for name, ins in inputs.items()}
        if pending[self.source]:
            raise RoutingError(f"{self.source!r} must not have inputs")
        queue = deque([self.source])
        order = []
        while queue:
            name = queue.popleft()
            order.append(name)
            for dst in links.get(name, []):
                pending[dst] -= 1
                if pending[dst] == 0:
                    queue.append(dst)

        unreached = [name for name in stages if name not in order]
        if unreached:
            raise RoutingError(f"stages not fed from {self.source!r} (or cyclic): {unreached}")

        # Every stage must also reach the sink
        reaches_sink = {self.sink}
        for name in reversed(order):
            if any(dst in reaches_sink for dst in links.get(name, [])):
                reaches_sink.add(name)
        orphans = [name for name in stages if name not in reaches_sink]
        if orphans:
            raise RoutingError(f"stages with no path to {self.sink!r}: {orphans}")
        return order, inputs

    def is_connected(self) -> bool:
        """True when the current wiring is total (every stage source-to-sink)."""
        try:
            self._plan(self._stages, self._links)
        except RoutingError:
            return False
        return True

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def process(self, block: np.ndarray) -> np.ndarray:
        """Push one block in at the source, return what arrives at the sink."""
        with self.lock:
            if not self._order:
                self._order, self._inputs = self._plan(self._stages, self._links)
            outputs = {}
            for name in self._order:
                if name == self.source:
                    x = block
                else:
                    ins = self._inputs[name]
                    x = outputs[ins[0]]
                    for other in ins[1:]:
                        x = x + outputs[other]
                outputs[name] = self._stages[name].process(x)
            return outputs[self.sink]

    def reset(self):
        with self.lock:
            for stage in self._stages.values():
                stage.reset()
