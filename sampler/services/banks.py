"""Sample banks — named collections of saved WAV samples.

LocalBankStore keeps each bank as a directory of WAV files with a JSON
index (bank name -> list of sample records). A record is
{"name", "path", "color"}; the path is relative to the store root.
"""

import json
import logging
import os
import re
import time

log = logging.getLogger(__name__)

INDEX_FILE = "banks.json"


def _safe_name(name):
    return re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("_") or "sample"


class LocalBankStore:
    """Directory-backed sample banks."""

    def __init__(self, root):
        self.root = os.fspath(root)
        os.makedirs(self.root, exist_ok=True)
        self._index_path = os.path.join(self.root, INDEX_FILE)
        self.banks = self._load_index()

    def _load_index(self):
        if not os.path.exists(self._index_path):
            return {}
        with open(self._index_path) as f:
            return json.load(f)

    def _save_index(self):
        tmp = self._index_path + ".tmp"
        with open(tmp, "w") as f:
            json.dump(self.banks, f, indent=2)
        os.replace(tmp, self._index_path)

    def list_banks(self):
        return sorted(self.banks)

    def samples(self, bank):
        return list(self.banks.get(bank, []))

    def create_bank(self, name) -> bool:
        """False if a bank with this name already exists."""
        if name in self.banks:
            return False
        self.banks[name] = []
        os.makedirs(os.path.join(self.root, _safe_name(name)), exist_ok=True)
        self._save_index()
        return True

    def add_sample(self, bank, name, wav_bytes, color) -> dict:
        """Store WAV bytes under `name` in `bank`. Raises KeyError for unknown banks."""
        if bank not in self.banks:
            raise KeyError(f"no bank named {bank!r}")
        rel_path = os.path.join(_safe_name(bank),
                                f"{_safe_name(name)}_{time.time_ns()}.wav")
        full_path = os.path.join(self.root, rel_path)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, "wb") as f:
            f.write(wav_bytes)
        record = {"name": name, "path": rel_path, "color": color}
        self.banks[bank].append(record)
        self._save_index()
        log.info("saved sample %r to bank %r (%d bytes)", name, bank, len(wav_bytes))
        return record

    def read_sample(self, sample) -> bytes:
        with open(os.path.join(self.root, sample["path"]), "rb") as f:
            return f.read()

    def delete_sample(self, bank, sample):
        """Remove a sample record and its file. A missing file is only logged."""
        if bank not in self.banks:
            raise KeyError(f"no bank named {bank!r}")
        self.banks[bank] = [s for s in self.banks[bank] if s["path"] != sample["path"]]
        self._save_index()
        try:
            os.remove(os.path.join(self.root, sample["path"]))
        except FileNotFoundError:
            log.warning("sample file already gone: %s", sample["path"])

    def delete_bank(self, name) -> bool:
        if name not in self.banks:
            return False
        for sample in list(self.banks[name]):
            self.delete_sample(name, sample)
        del self.banks[name]
        self._save_index()
        bank_dir = os.path.join(self.root, _safe_name(name))
        if os.path.isdir(bank_dir) and not os.listdir(bank_dir):
            os.rmdir(bank_dir)
        return True
