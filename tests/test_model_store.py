# test_model_store.py - binary format, error kinds and atomic saves
import io
import os
import pickle
import struct
import zlib
from unittest.mock import patch

import pytest

from next_word_predictor.core.ngram_model import NGramModel
from next_word_predictor.utils import model_store
from next_word_predictor.utils.model_store import (
    ModelStore,
    ErrorKind,
    StoreResult,
    SourceNotFoundError,
    CorruptModelError,
    PersistenceWriteError,
    dumps,
    loads,
    serialize,
    deserialize,
)

CONTEXTS = ["", "the", "the cat", "cat", "nothing like this", "a the cat sat"]


@pytest.fixture
def model():
    m = NGramModel(n=3, smoothing=0.25)
    m.train("the cat sat on the mat. the cat ran off, the dog sat down")
    m.train("it's the dog's dinner")
    return m


def _frame(payload: bytes, version: int = model_store.FORMAT_VERSION, magic: bytes = model_store.MAGIC) -> bytes:
    header = struct.pack(">8sHIQ", magic, version, zlib.crc32(payload), len(payload))
    return header + payload


def test_roundtrip_predictions_identical(model):
    clone = loads(dumps(model))
    assert clone.order == model.order
    assert clone.smoothing == model.smoothing
    assert clone.total_words == model.total_words
    assert clone.vocabulary == model.vocabulary
    for ctx in CONTEXTS:
        for k in (1, 3, 10):
            got = clone.predict_next(ctx, k)
            want = model.predict_next(ctx, k)
            assert [w for w, _ in got] == [w for w, _ in want]
            assert [p for _, p in got] == pytest.approx([p for _, p in want])


def test_roundtrip_untrained():
    clone = loads(dumps(NGramModel(n=5)))
    assert clone.order == 5
    assert clone.predict_next("", 3) == []


def test_stream_api_reports_size(model):
    buf = io.BytesIO()
    n = serialize(model, buf)
    assert n == len(buf.getvalue())
    buf.seek(0)
    assert deserialize(buf).save_state() == model.save_state()


def test_bad_magic(model):
    data = bytearray(dumps(model))
    data[:8] = b"NOTMODEL"
    with pytest.raises(CorruptModelError):
        loads(bytes(data))


def test_truncated(model):
    data = dumps(model)
    with pytest.raises(CorruptModelError):
        loads(data[:10])
    with pytest.raises(CorruptModelError):
        loads(data[:-5])


def test_flipped_payload_byte(model):
    data = bytearray(dumps(model))
    data[-1] ^= 0xFF
    with pytest.raises(CorruptModelError, match="checksum"):
        loads(bytes(data))


def test_unknown_version(model):
    payload = dumps(model)[struct.calcsize(">8sHIQ"):]
    with pytest.raises(CorruptModelError, match="version"):
        loads(_frame(payload, version=99))


def test_incompatible_schema():
    payload = pickle.dumps({"schema": 42, "state": {}})
    with pytest.raises(CorruptModelError, match="schema"):
        loads(_frame(payload))


def test_invalid_state():
    payload = pickle.dumps({"schema": model_store.SCHEMA_VERSION, "state": {"n": 3}})
    with pytest.raises(CorruptModelError):
        loads(_frame(payload))


def test_garbage_payload():
    with pytest.raises(CorruptModelError):
        loads(_frame(b"definitely not a pickle"))


def test_error_kinds():
    assert SourceNotFoundError("x").kind is ErrorKind.SOURCE_NOT_FOUND
    assert CorruptModelError("x").kind is ErrorKind.CORRUPT_OR_INCOMPATIBLE
    assert PersistenceWriteError("x").kind is ErrorKind.PERSISTENCE_WRITE_FAILURE
    r = StoreResult.failure(CorruptModelError("bad bytes"))
    assert not r.ok and r.kind is ErrorKind.CORRUPT_OR_INCOMPATIBLE and r.message == "bad bytes"


def test_store_missing_and_empty(tmp_path):
    store = ModelStore(str(tmp_path / "missing.bin"))
    assert not store.exists()
    assert store.size() == 0
    with pytest.raises(SourceNotFoundError):
        store.load()

    empty = tmp_path / "empty.bin"
    empty.write_bytes(b"")
    with pytest.raises(SourceNotFoundError):
        ModelStore(str(empty)).load()


def test_store_save_and_load(tmp_path, model):
    path = tmp_path / "nested" / "dir" / "model.bin"
    store = ModelStore(str(path))
    nbytes = store.save(model)
    assert path.exists()
    assert store.size() == nbytes
    assert store.load().save_state() == model.save_state()
    # no temp files left behind
    assert os.listdir(path.parent) == ["model.bin"]


def test_store_corrupt_file(tmp_path):
    path = tmp_path / "model.bin"
    path.write_bytes(b"\x00" * 64)
    with pytest.raises(CorruptModelError):
        ModelStore(str(path)).load()


def test_failed_save_keeps_previous_file(tmp_path, model):
    path = tmp_path / "model.bin"
    store = ModelStore(str(path))
    store.save(model)
    before = path.read_bytes()

    bigger = NGramModel.from_state(model.save_state())
    bigger.train("completely new words arrive")
    with patch("next_word_predictor.utils.model_store.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(PersistenceWriteError, match="disk full"):
            store.save(bigger)

    assert path.read_bytes() == before
    assert os.listdir(tmp_path) == ["model.bin"]


def test_save_into_unwritable_location(tmp_path, model):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    with pytest.raises(PersistenceWriteError):
        ModelStore(str(blocker / "model.bin")).save(model)


class _RunsShell:
    def __reduce__(self):
        return (os.system, ("echo should-not-run",))


@pytest.mark.parametrize("length", [2 ** 64 - 1, 2 ** 62])
def test_oversized_length_field(tmp_path, length):
    path = tmp_path / "model.bin"
    path.write_bytes(struct.pack(">8sHIQ", model_store.MAGIC, model_store.FORMAT_VERSION, 0, length) + b"x" * 16)
    with pytest.raises(CorruptModelError, match="truncated payload"):
        ModelStore(str(path)).load()


def test_oversized_length_on_unseekable_stream():
    class Unseekable(io.RawIOBase):
        def __init__(self, data):
            self._buf = io.BytesIO(data)

        def readable(self):
            return True

        def seekable(self):
            return False

        def read(self, n=-1):
            if n > 2 ** 40:
                raise OverflowError("cannot fit 'int' into an index-sized integer")
            return self._buf.read(n)

    header = struct.pack(">8sHIQ", model_store.MAGIC, model_store.FORMAT_VERSION, 0, 2 ** 64 - 1)
    with pytest.raises(CorruptModelError, match="unreadable"):
        deserialize(Unseekable(header))


def test_payload_with_globals_is_refused(tmp_path):
    marker = tmp_path / "ran"
    evil = pickle.dumps({"schema": model_store.SCHEMA_VERSION, "state": _RunsShell()})
    with patch("os.system", side_effect=lambda cmd: marker.write_text(cmd)) as system:
        with pytest.raises(CorruptModelError, match="not allowed"):
            loads(_frame(evil))
    system.assert_not_called()
    assert not marker.exists()
