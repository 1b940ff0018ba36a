# model_store.py - persistence layer for the n-gram model

# handles saving and loading the model:
# - binary file: fixed header (magic, format version, crc32, payload length) + pickled payload
# - payload is the model's plain-builtin snapshot (dicts/tuples/ints/strings only)
# - saves go to a temp file in the same directory and are os.replace'd onto the target
# - every failure is raised as a ModelStoreError subclass tagged with an ErrorKind

from __future__ import annotations

import io
import os
import pickle
import struct
import tempfile
import zlib
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Optional

from next_word_predictor.core.ngram_model import NGramModel

MAGIC = b"NGRMODEL"
FORMAT_VERSION = 1
SCHEMA_VERSION = 1

# magic, format version, crc32 of payload, payload length
_HEADER = struct.Struct(">8sHIQ")


# Errors -------------------------------------------------------------------
class ErrorKind(Enum):
    SOURCE_NOT_FOUND = "source_not_found"
    CORRUPT_OR_INCOMPATIBLE = "corrupt_or_incompatible"
    PERSISTENCE_WRITE_FAILURE = "persistence_write_failure"


class ModelStoreError(Exception):
    kind: ErrorKind


class SourceNotFoundError(ModelStoreError, FileNotFoundError):
    """Load requested but the model file is missing or empty."""
    kind = ErrorKind.SOURCE_NOT_FOUND


class CorruptModelError(ModelStoreError, ValueError):
    """Bytes could not be turned back into a valid model."""
    kind = ErrorKind.CORRUPT_OR_INCOMPATIBLE


class PersistenceWriteError(ModelStoreError, OSError):
    """Serializing or writing the model failed."""
    kind = ErrorKind.PERSISTENCE_WRITE_FAILURE


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a load/save once it has crossed the session boundary."""
    ok: bool
    kind: Optional[ErrorKind] = None
    message: str = ""
    nbytes: int = 0

    @classmethod
    def success(cls, nbytes: int = 0) -> "StoreResult":
        return cls(ok=True, nbytes=nbytes)

    @classmethod
    def failure(cls, err: ModelStoreError) -> "StoreResult":
        return cls(ok=False, kind=err.kind, message=str(err))


# Stream codec -------------------------------------------------------------
def serialize(model: NGramModel, stream: BinaryIO) -> int:
    """
    Write `model` to a binary stream. Returns number of bytes written.
    """
    payload = pickle.dumps(
        {"schema": SCHEMA_VERSION, "state": model.save_state()},
        protocol=pickle.HIGHEST_PROTOCOL,
    )
    stream.write(_HEADER.pack(MAGIC, FORMAT_VERSION, zlib.crc32(payload), len(payload)))
    stream.write(payload)
    return _HEADER.size + len(payload)


class _StateUnpickler(pickle.Unpickler):
    """Unpickler for the model payload: plain builtins only, no globals."""

    def find_class(self, module, name):
        raise pickle.UnpicklingError(f"global {module}.{name} is not allowed in a model file")


def _remaining(stream: BinaryIO) -> Optional[int]:
    # bytes left after the current position, None for non-seekable streams
    try:
        if not stream.seekable():
            return None
        pos = stream.tell()
        end = stream.seek(0, io.SEEK_END)
        stream.seek(pos)
    except (AttributeError, OSError):
        return None
    return end - pos


def deserialize(stream: BinaryIO) -> NGramModel:
    """
    Read a model written by `serialize`. Raises CorruptModelError on any
    header, checksum or schema problem.
    """
    header = stream.read(_HEADER.size)
    if len(header) < _HEADER.size:
        raise CorruptModelError(f"truncated header ({len(header)} of {_HEADER.size} bytes)")
    magic, version, crc, length = _HEADER.unpack(header)
    if magic != MAGIC:
        raise CorruptModelError(f"not a model file (magic {magic!r})")
    if version != FORMAT_VERSION:
        raise CorruptModelError(f"unsupported format version {version} (expected {FORMAT_VERSION})")

    left = _remaining(stream)
    if left is not None and length > left:
        raise CorruptModelError(f"truncated payload ({left} of {length} bytes)")
    try:
        payload = stream.read(length)
    except (OverflowError, MemoryError) as e:
        raise CorruptModelError(f"payload length {length} is unreadable: {e}") from e
    if len(payload) != length:
        raise CorruptModelError(f"truncated payload ({len(payload)} of {length} bytes)")
    if zlib.crc32(payload) != crc:
        raise CorruptModelError("payload checksum mismatch")

    try:
        data = _StateUnpickler(io.BytesIO(payload)).load()
    except Exception as e:
        raise CorruptModelError(f"payload could not be unpickled: {e}") from e
    if not isinstance(data, dict) or data.get("schema") != SCHEMA_VERSION:
        raise CorruptModelError("payload schema is missing or incompatible")
    try:
        return NGramModel.from_state(data["state"])
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise CorruptModelError(f"invalid model state: {e}") from e


def dumps(model: NGramModel) -> bytes:
    buf = io.BytesIO()
    serialize(model, buf)
    return buf.getvalue()


def loads(data: bytes) -> NGramModel:
    return deserialize(io.BytesIO(data))


# File store ---------------------------------------------------------------
class ModelStore:
    """
    File-backed model persistence.
    Public API:
      exists(), size(), load(), save(model)
    """

    def __init__(self, path: str):
        self.path = os.fspath(path)

    def exists(self) -> bool:
        return os.path.isfile(self.path) and os.path.getsize(self.path) > 0

    def size(self) -> int:
        try:
            return os.path.getsize(self.path)
        except OSError:
            return 0

    def load(self) -> NGramModel:
        if not self.exists():
            raise SourceNotFoundError(f"no saved model at {self.path}")
        try:
            with open(self.path, "rb") as fh:
                return deserialize(fh)
        except ModelStoreError:
            raise
        except OSError as e:
            raise CorruptModelError(f"could not read {self.path}: {e}") from e

    def save(self, model: NGramModel) -> int:
        """
        Atomic save (writes to tmp file then replace). Returns bytes written.
        """
        dirname = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(dirname, exist_ok=True)
            tmp_fd, tmp_path = tempfile.mkstemp(prefix=".ngram_", suffix=".tmp", dir=dirname)
        except OSError as e:
            raise PersistenceWriteError(f"cannot prepare {dirname}: {e}") from e
        try:
            with os.fdopen(tmp_fd, "wb") as fh:
                nbytes = serialize(model, fh)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
            return nbytes
        except (OSError, pickle.PicklingError) as e:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise PersistenceWriteError(f"save to {self.path} failed: {e}") from e
