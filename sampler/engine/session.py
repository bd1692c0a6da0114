"""EditSession — the editor's single owner of buffer, history and live chain.

One session per loaded sample. Every edit builds a new SampleBuffer off to
the side; the session swaps it in only when the edit has fully succeeded,
so a failed render leaves the current buffer authoritative.

Undo snapshots are kept as encoded WAV bytes, the same artifact the player
reloads from, bounded to MAX_HISTORY entries.
"""

import logging
import threading
from concurrent.futures import Future
from contextlib import contextmanager

from sampler.engine.buffer import SampleBuffer
from sampler.engine.live import ChainState, LiveChain
from sampler.engine.params import MAX_HISTORY, SR, TRIM_TOLERANCE
from sampler.engine.router import process_region
from sampler.engine.splice import slice_buffer
from sampler.engine.wav import decode_wav, encode_wav

log = logging.getLogger(__name__)


class EditSession:
    """Holds the current buffer and serializes edits against it.

    Reload listeners are called as listener(buffer, wav_bytes) after every
    successful swap (load, edit, undo, redo). That is where a player or
    waveform view picks up the new audio.
    """

    def __init__(self, sample_rate: int = SR, max_history: int = MAX_HISTORY):
        self.chain = LiveChain(sample_rate)
        self.buffer: SampleBuffer | None = None
        self.active_region: tuple[float, float] | None = None
        self.listeners = []

        # Undo/redo
        self._undo_stack: list[bytes] = []
        self._redo_stack: list[bytes] = []
        self._max_undo = max_history

        self._edit_lock = threading.Lock()

    @property
    def is_empty(self) -> bool:
        return self.buffer is None

    @property
    def history_depth(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_depth(self) -> int:
        return len(self._redo_stack)

    # ------------------------------------------------------------------
    # Buffer swapping
    # ------------------------------------------------------------------

    def load(self, buffer: SampleBuffer):
        """Start editing a freshly decoded buffer. History is cleared."""
        with self._editing():
            self.chain.close_preview()
            self.active_region = None
            self._undo_stack.clear()
            self._redo_stack.clear()
            self._swap(buffer)

    def _swap(self, buffer: SampleBuffer, wav: bytes | None = None):
        wav = encode_wav(buffer) if wav is None else wav
        self.buffer = buffer
        self.chain.set_sample_rate(buffer.sample_rate)
        self.chain.rebuild()
        for listener in self.listeners:
            listener(buffer, wav)

    def _commit(self, new_buffer: SampleBuffer):
        """Swap in an edit result and record the previous buffer for undo."""
        snapshot = encode_wav(self.buffer)
        wav = encode_wav(new_buffer)
        self._undo_stack.append(snapshot)
        if len(self._undo_stack) > self._max_undo:
            self._undo_stack.pop(0)
        self._redo_stack.clear()
        self._swap(new_buffer, wav)
        log.debug("history saved, steps: %d", len(self._undo_stack))

    @contextmanager
    def _editing(self):
        """Edit guard: one edit at a time, overlapping requests are refused."""
        if not self._edit_lock.acquire(blocking=False):
            raise RuntimeError("another edit is in progress on this buffer")
        try:
            yield
        finally:
            self._edit_lock.release()

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def apply_direct_effect(self, effect_type: str, start: float, end: float,
                            params: dict | None = None) -> bool:
        """Run an effect on a region straight away. True if the buffer changed."""
        if self.buffer is None:
            return False
        with self._editing():
            new_buffer = process_region(self.buffer, effect_type, start, end, params)
            if new_buffer is self.buffer:
                return False
            self._commit(new_buffer)
        return True

    def trim(self, start_ratio: float, end_ratio: float) -> bool:
        """Keep only [start_ratio, end_ratio) of the buffer.

        Ratios within TRIM_TOLERANCE of an edge snap to it. A selection that
        covers everything, or nothing, leaves the buffer alone.
        """
        if self.buffer is None:
            return False
        start_ratio = max(0.0, start_ratio)
        end_ratio = min(1.0, end_ratio)
        if start_ratio < TRIM_TOLERANCE:
            start_ratio = 0.0
        if end_ratio > 1.0 - TRIM_TOLERANCE:
            end_ratio = 1.0
        if start_ratio >= end_ratio:
            return False
        if start_ratio == 0.0 and end_ratio == 1.0:
            log.info("no trim selected, nothing to do")
            return False

        with self._editing():
            trimmed = slice_buffer(self.buffer, start_ratio, end_ratio)
            if trimmed is None:
                return False
            self.chain.close_preview()
            self.active_region = None
            self._commit(trimmed)
        return True

    # ------------------------------------------------------------------
    # Live preview and freeze
    # ------------------------------------------------------------------

    @property
    def previewing(self) -> bool:
        return self.chain.state is ChainState.PREVIEW

    def activate_preview(self, effect_type: str, start: float, end: float,
                         params: dict | None = None):
        """Monitor an effect live on a region before freezing it."""
        if self.buffer is None:
            return
        self.close_preview()
        self.active_region = (start, end)
        self.chain.activate_preview(effect_type, params)

    def set_preview_param(self, key: str, value) -> bool:
        return self.chain.set_preview_param(key, value)

    def close_preview(self):
        self.active_region = None
        self.chain.close_preview()

    def freeze(self) -> bool:
        """Render the previewed effect into the buffer and end the preview.

        True if the buffer changed. An empty or out-of-bounds region still
        ends the preview but records nothing.

        If rendering fails the error propagates, the preview stays open and
        the buffer is unchanged.
        """
        if not self.previewing or self.active_region is None or self.buffer is None:
            return False
        effect_type = self.chain.preview_type
        params = dict(self.chain.preview_params)
        start, end = self.active_region
        log.info("freezing %s on %.3f-%.3fs", effect_type, start, end)

        with self._editing():
            new_buffer = process_region(self.buffer, effect_type, start, end, params)
            self.close_preview()
            if new_buffer is self.buffer:
                return False
            self._commit(new_buffer)
        return True

    def freeze_async(self, callback=None) -> Future:
        """freeze() on a worker thread. The Future resolves to its bool result."""
        future = Future()
        if callback is not None:
            future.add_done_callback(callback)

        def _do_freeze():
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self.freeze())
            except Exception as exc:
                future.set_exception(exc)

        threading.Thread(target=_do_freeze, daemon=True).start()
        return future

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def undo(self) -> bool:
        if not self._undo_stack or self.buffer is None:
            return False
        with self._editing():
            self._redo_stack.append(encode_wav(self.buffer))
            wav = self._undo_stack.pop()
            log.debug("undoing, steps left: %d", len(self._undo_stack))
            self.active_region = None
            self.chain.close_preview()
            self._swap(decode_wav(wav), wav)
        return True

    def redo(self) -> bool:
        if not self._redo_stack or self.buffer is None:
            return False
        with self._editing():
            self._undo_stack.append(encode_wav(self.buffer))
            if len(self._undo_stack) > self._max_undo:
                self._undo_stack.pop(0)
            wav = self._redo_stack.pop()
            log.debug("redoing")
            self._swap(decode_wav(wav), wav)
        return True

    def export_wav(self) -> bytes | None:
        """Current buffer as WAV bytes, for download or a sample bank."""
        if self.buffer is None:
            return None
        return encode_wav(self.buffer)
