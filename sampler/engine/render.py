"""Offline rendering of graph-based effects over one isolated clip.

Graphs (clip -> ... -> destination):

    distortion:  clip -> shaper -> destination
    delay:       clip -> destination                 (dry)
                 clip -> delay -> destination        (wet, feedback inside)
    bitcrush:    clip -> crush (pass-through) -> destination, then bit_crush()

The clip is pushed through in RENDER_QUANTUM blocks and the result has
exactly the clip's length. Delay tails that would ring past the end of the
clip are cut off there; the clip is never extended.

There is no way to cancel a render once it has started.
"""

import logging
import threading
import time
from concurrent.futures import Future

import numpy as np

from sampler.engine.buffer import SampleBuffer
from sampler.engine.effects import bit_crush
from sampler.engine.graph import RoutingGraph, chain_links
from sampler.engine.params import RENDER_EFFECTS, RENDER_QUANTUM, resolve_params
from sampler.engine.splice import extract_clip
from sampler.engine.stages import Passthrough, make_effect_stage

log = logging.getLogger(__name__)

CLIP = "clip"
DESTINATION = "destination"


class RenderError(RuntimeError):
    """An offline render failed; the source buffer is untouched."""


def build_offline_graph(effect_type: str, params: dict, sr: int) -> RoutingGraph:
    """Bounded graph for one render. Fresh stages, so no state leaks in."""
    graph = RoutingGraph(source=CLIP, sink=DESTINATION)
    if effect_type == "bitcrush":
        effect = Passthrough()
    else:
        effect = make_effect_stage(effect_type, params, sr)
    stages = [(CLIP, Passthrough()), (effect_type, effect), (DESTINATION, Passthrough())]

    links = chain_links([CLIP, effect_type, DESTINATION])
    if effect_type == "delay":
        links.append((CLIP, DESTINATION))
    graph.rebuild(stages, links)
    return graph


def run_graph(graph: RoutingGraph, clip: SampleBuffer, block_size: int = RENDER_QUANTUM) -> SampleBuffer:
    """Stream the clip through the graph, block by block."""
    out = clip.like()
    n = clip.frame_count
    for start in range(0, n, block_size):
        end = min(start + block_size, n)
        out.data[:, start:end] = graph.process(clip.data[:, start:end])
    return out


def render_clip(clip: SampleBuffer, effect_type: str, params: dict | None = None) -> SampleBuffer:
    """Render one clip through the effect's graph.

    Returns a new clip with the same channel count and frame count.
    Raises ValueError for effect types without a graph and RenderError if
    anything fails while rendering.
    """
    if effect_type not in RENDER_EFFECTS:
        raise ValueError(f"Unknown render effect '{effect_type}'. Options: {list(RENDER_EFFECTS)}")
    p = resolve_params(effect_type, params)
    t0 = time.perf_counter()
    try:
        graph = build_offline_graph(effect_type, p, clip.sample_rate)
        rendered = run_graph(graph, clip)
        if effect_type == "bitcrush":
            bit_crush(rendered, p["bits"], p["frequency"])
        if not np.all(np.isfinite(rendered.data)):
            raise FloatingPointError("output diverged (non-finite values)")
    except Exception as exc:
        raise RenderError(f"{effect_type} render failed: {exc}") from exc

    elapsed = time.perf_counter() - t0
    duration = clip.duration
    rtf = duration / elapsed if elapsed > 0 else float('inf')
    log.info("render %s %.2fs audio in %.3fs (%d ch, %.0fx RT)",
             effect_type, duration, elapsed, clip.channel_count, rtf)
    return rendered


def render_region(buffer: SampleBuffer, effect_type: str, start_frame: int, end_frame: int,
                  params: dict | None = None) -> SampleBuffer:
    """Extract [start_frame, end_frame) from buffer and render it."""
    return render_clip(extract_clip(buffer, start_frame, end_frame), effect_type, params)


def render_clip_async(clip: SampleBuffer, effect_type: str, params: dict | None = None,
                      callback=None) -> Future:
    """Render on a background thread.

    The returned Future resolves to the rendered clip or raises the render
    error. callback(future) runs on the worker thread when it settles.
    Cancelling the Future after the thread starts has no effect on the render.
    """
    future = Future()
    if callback is not None:
        future.add_done_callback(callback)

    def _do_render():
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(render_clip(clip, effect_type, params))
        except Exception as exc:
            future.set_exception(exc)

    t = threading.Thread(target=_do_render, daemon=True)
    t.start()
    return future
