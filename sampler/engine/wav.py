"""WAV serialization of sample buffers (16-bit PCM, canonical 44-byte header).

The encoded bytes are what the editor hands to the player for reload, keeps
as undo snapshots, stores in sample banks and offers for download.
"""

import io

import numpy as np
from scipy.io import wavfile

from sampler.engine.buffer import SampleBuffer

HEADER_SIZE = 44


def to_int16(data: np.ndarray) -> np.ndarray:
    """Float samples to int16: clamp to [-1, 1], negatives scale by 32768,
    the rest by 32767, fractional part truncated. NaN becomes 0.
    """
    x = np.clip(np.nan_to_num(data.astype(np.float64), nan=0.0), -1.0, 1.0)
    scaled = np.where(x < 0, x * 32768.0, x * 32767.0)
    return np.trunc(scaled).astype(np.int16)


def encode_wav(buffer: SampleBuffer) -> bytes:
    """Serialize to RIFF/WAVE PCM16, frames interleaved ch0, ch1, ch0, ch1, ...

    Output length is 44 + frame_count * channel_count * 2. Byte rate and
    block align derive from channel count and rate. Data larger than the
    32-bit RIFF size field is not handled here (scipy refuses it).
    """
    pcm = to_int16(buffer.data).T  # (frames, channels) -> interleaved rows
    if buffer.channel_count == 1:
        pcm = pcm[:, 0]
    out = io.BytesIO()
    wavfile.write(out, buffer.sample_rate, np.ascontiguousarray(pcm))
    return out.getvalue()


def decode_wav(blob: bytes) -> SampleBuffer:
    """Read WAV bytes (e.g. an undo snapshot) back into a float buffer."""
    sr, data = wavfile.read(io.BytesIO(blob))
    if data.dtype == np.int16:
        audio = data.astype(np.float32) / 32768.0
    elif data.dtype == np.int32:
        audio = data.astype(np.float32) / 2147483648.0
    else:
        audio = data.astype(np.float32)
    return SampleBuffer.from_interleaved(audio, sr)
