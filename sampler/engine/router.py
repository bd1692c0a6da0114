"""Region effect router — one call for every effect on a time region.

    reverse                        -> direct math, whole buffer copied
    distortion / delay / bitcrush  -> offline render of the clip, then merge

Unknown effect types, regions that round to zero frames and regions reaching
outside the buffer return the input buffer object itself, unchanged.
"""

import logging

from sampler.engine.buffer import SampleBuffer
from sampler.engine.effects import reverse_range
from sampler.engine.params import MATH_EFFECTS, RENDER_EFFECTS
from sampler.engine.render import render_region
from sampler.engine.splice import merge_clip

log = logging.getLogger(__name__)


def process_region(buffer: SampleBuffer, effect_type: str, start_seconds: float,
                   end_seconds: float, params: dict | None = None) -> SampleBuffer:
    """Apply an effect to [start_seconds, end_seconds) and return the new buffer.

    params may carry "region_volume" to scale the rendered range when it is
    merged back. Render failures propagate as RenderError.
    """
    params = params or {}
    if effect_type not in MATH_EFFECTS and effect_type not in RENDER_EFFECTS:
        log.debug("unsupported effect %r, buffer unchanged", effect_type)
        return buffer

    start, end = buffer.to_frame(start_seconds), buffer.to_frame(end_seconds)
    if start < 0 or end > buffer.frame_count or end - start <= 0:
        log.debug("region %.4f-%.4fs empty or out of bounds, buffer unchanged",
                  start_seconds, end_seconds)
        return buffer

    if effect_type == "reverse":
        return reverse_range(buffer, start, end)

    clip = render_region(buffer, effect_type, start, end, params)
    return merge_clip(buffer, clip, start, volume=float(params.get("region_volume", 1.0)))
