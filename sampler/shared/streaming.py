"""Live monitoring output: session buffer -> LiveChain -> sound device.

MonitorStream owns an sd.OutputStream whose callback reads the next block of
the session's current buffer, runs it through the live chain (preview
effect, EQ, master) and writes the result. While a preview is open the
active region loops, so knob changes are heard immediately.
"""

import logging

import numpy as np

log = logging.getLogger(__name__)


class MonitorStream:
    """Pull-based playback of an EditSession through its live chain."""

    def __init__(self, session, block_size=512):
        self.session = session
        self.block_size = block_size
        self.position = 0
        self._stream = None
        self._sd = None
        self._finished = False

    @property
    def finished(self):
        return self._finished

    def _loop_bounds(self, buffer):
        region = self.session.active_region
        if region is None:
            return 0, buffer.frame_count, False
        start, end = buffer.region_frames(*region)
        if end <= start:
            return 0, buffer.frame_count, False
        return start, end, True

    def next_block(self, frames):
        """Next (channels, frames) block of source audio, advancing the play head."""
        buffer = self.session.buffer
        if buffer is None:
            return None
        start, end, looping = self._loop_bounds(buffer)
        if looping and not start <= self.position < end:
            self.position = start

        block = np.zeros((buffer.channel_count, frames), dtype=np.float32)
        filled = 0
        while filled < frames:
            take = min(frames - filled, end - self.position)
            if take <= 0:
                if not looping:
                    self._finished = True
                    break
                self.position = start
                continue
            block[:, filled:filled + take] = buffer.data[:, self.position:self.position + take]
            self.position += take
            filled += take
        return block

    def callback(self, outdata, frames, time_info, status):
        """sounddevice callback: fills outdata (frames, channels)."""
        if status:
            log.warning("monitor stream status: %s", status)
        block = self.next_block(frames)
        if block is None:
            outdata.fill(0)
            return
        out = self.session.chain.process(block)
        n_out = outdata.shape[1]
        rows = np.clip(out, -1.0, 1.0).T
        if rows.shape[1] >= n_out:
            outdata[:] = rows[:, :n_out]
        else:
            outdata[:] = np.repeat(rows[:, :1], n_out, axis=1)
        if self._finished and self._sd is not None:
            raise self._sd.CallbackStop()

    def start(self, position=0):
        """Open the default output device and start playing."""
        import sounddevice as sd

        buffer = self.session.buffer
        if buffer is None:
            return
        self.stop()
        self._sd = sd
        self.position = position
        self._finished = False
        self._stream = sd.OutputStream(
            samplerate=buffer.sample_rate,
            channels=buffer.channel_count,
            dtype='float32',
            blocksize=self.block_size,
            callback=self.callback,
        )
        self._stream.start()

    def stop(self):
        if self._stream is not None:
            try:
                self._stream.stop()
                self._stream.close()
            except Exception as exc:
                log.warning("monitor stream close failed: %s", exc)
            self._stream = None
