"""
next_word_predictor

Statistical next-word prediction: an order-N n-gram model with additive
smoothing and summed back-off, a binary model store, and a session facade
that retrains from accumulated user text.
"""

from .core import NGramModel, PredictorSession, tokenize
from .utils.model_store import (
    ModelStore,
    StoreResult,
    ErrorKind,
    ModelStoreError,
    SourceNotFoundError,
    CorruptModelError,
    PersistenceWriteError,
)

__all__ = [
    "NGramModel",
    "PredictorSession",
    "tokenize",
    "ModelStore",
    "StoreResult",
    "ErrorKind",
    "ModelStoreError",
    "SourceNotFoundError",
    "CorruptModelError",
    "PersistenceWriteError",
]

__version__ = "0.1.0"
