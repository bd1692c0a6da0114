"""Test the local sample bank store.

Run: uv run pytest tests/test_banks.py
"""

import json
import logging
import os
import pytest
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from sampler.engine.buffer import SampleBuffer
from sampler.engine.wav import decode_wav, encode_wav
from sampler.services.banks import INDEX_FILE, LocalBankStore


def make_wav(frames=100):
    return encode_wav(SampleBuffer.zeros(1, frames, 44100))


def test_create_and_list(tmp_path):
    store = LocalBankStore(tmp_path)
    assert store.list_banks() == []
    assert store.create_bank("drums")
    assert store.create_bank("bass")
    assert store.create_bank("drums") is False
    assert store.list_banks() == ["bass", "drums"]


def test_add_sample_writes_file_and_index(tmp_path):
    store = LocalBankStore(tmp_path)
    store.create_bank("drums")
    wav = make_wav()
    record = store.add_sample("drums", "kick 01", wav, "#ff0000")

    assert record["name"] == "kick 01"
    assert record["color"] == "#ff0000"
    assert store.read_sample(record) == wav
    assert decode_wav(store.read_sample(record)).frame_count == 100

    with open(tmp_path / INDEX_FILE) as f:
        index = json.load(f)
    assert index["drums"] == [record]


def test_index_survives_reopen(tmp_path):
    store = LocalBankStore(tmp_path)
    store.create_bank("keys")
    record = store.add_sample("keys", "rhodes", make_wav(), "blue")
    reopened = LocalBankStore(tmp_path)
    assert reopened.samples("keys") == [record]


def test_unknown_bank(tmp_path):
    store = LocalBankStore(tmp_path)
    with pytest.raises(KeyError):
        store.add_sample("nope", "x", make_wav(), "red")
    with pytest.raises(KeyError):
        store.delete_sample("nope", {"path": "x.wav"})
    assert store.samples("nope") == []
    assert store.delete_bank("nope") is False


def test_delete_sample(tmp_path, caplog):
    store = LocalBankStore(tmp_path)
    store.create_bank("fx")
    a = store.add_sample("fx", "a", make_wav(), "red")
    b = store.add_sample("fx", "b", make_wav(), "red")
    store.delete_sample("fx", a)
    assert store.samples("fx") == [b]
    assert not os.path.exists(os.path.join(tmp_path, a["path"]))

    os.remove(os.path.join(tmp_path, b["path"]))
    with caplog.at_level(logging.WARNING):
        store.delete_sample("fx", b)
    assert store.samples("fx") == []
    assert "already gone" in caplog.text


def test_delete_bank_removes_everything(tmp_path):
    store = LocalBankStore(tmp_path)
    store.create_bank("tmp")
    record = store.add_sample("tmp", "s", make_wav(), "red")
    assert store.delete_bank("tmp")
    assert store.list_banks() == []
    assert not os.path.exists(os.path.join(tmp_path, record["path"]))
