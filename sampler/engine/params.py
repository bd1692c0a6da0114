"""Effect parameter schema and engine constants.

This is the shared contract between the router, the live chain and whatever
UI drives them. All parameter sources produce a dict in this format.
"""

from sampler.shared.params import ParamDef, ParamSchema, ParamType

SR = 44100

# Frames per processing block, offline and live
RENDER_QUANTUM = 128

# Undo depth (encoded snapshots kept)
MAX_HISTORY = 10

# Entries in the waveshaper transfer table
CURVE_LENGTH = 44100

# Equalizer band centres in Hz. Lowest is a low shelf, highest a high shelf,
# everything in between a peaking bell.
EQ_BANDS = [32, 64, 125, 250, 500, 1000, 2000, 4000, 8000, 16000]
EQ_Q = 1.0

# Trim ratios this close to an edge snap to the edge
TRIM_TOLERANCE = 0.01

MATH_EFFECTS = ("reverse",)
RENDER_EFFECTS = ("distortion", "delay", "bitcrush")
EFFECT_TYPES = MATH_EFFECTS + RENDER_EFFECTS

SCHEMA = ParamSchema([
    # --- Distortion ---
    ParamDef("amount", ParamType.FLOAT, 50.0, "distortion", "Drive", (0.0, 400.0)),

    # --- Delay ---
    ParamDef("time", ParamType.FLOAT, 0.3, "delay", "Time (s)", (0.01, 1.0)),
    ParamDef("feedback", ParamType.FLOAT, 0.5, "delay", "Feedback", (0.0, 0.95)),

    # --- Bitcrush ---
    ParamDef("bits", ParamType.INT, 8, "bitcrush", "Bits", (1, 16)),
    # Downsampling stride: each quantized value is held for floor(1/frequency)
    # frames. Not a filter cutoff.
    ParamDef("frequency", ParamType.FLOAT, 0.25, "bitcrush", "Rate", (0.01, 1.0)),

    # --- Freeze ---
    ParamDef("region_volume", ParamType.FLOAT, 1.0, "output", "Region volume", (0.0, 2.0)),
])


def default_params(effect_type: str | None = None) -> dict:
    """Defaults for one effect (plus the shared output params), or all of them."""
    if effect_type is None:
        return SCHEMA.default_params()
    params = SCHEMA.default_params(effect_type)
    params.update(SCHEMA.default_params("output"))
    return params


def resolve_params(effect_type: str, params: dict | None) -> dict:
    """Overlay caller params on the effect defaults. Values are not clamped."""
    resolved = default_params(effect_type)
    if params:
        resolved.update(params)
    return resolved


def band_shape(freq: float) -> str:
    if freq <= EQ_BANDS[0]:
        return "lowshelf"
    if freq >= EQ_BANDS[-1]:
        return "highshelf"
    return "peaking"
