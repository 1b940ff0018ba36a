# next_word_predictor/core/protocols.py
"""
Protocol interfaces and typed structures shared by the predictor components.

The session depends on these Protocols rather than on concrete classes so a
front end can plug in its own reporting (or none) and tests can pass fakes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Protocol, Tuple, runtime_checkable
from typing_extensions import TypedDict


# Typed structures used across components ------------------------------------

class ModelStats(TypedDict, total=False):
    """
    Snapshot returned by NGramModel.stats() and PredictorSession.stats().

    The model fills the first four keys; the session adds history and file info:
      {"vocab_size": 812, "total_words": 10344, "order": 3, "smoothing": 0.1,
       "history_size": 4, "history_limit": 100, "file_size": 52011}
    """
    vocab_size: int
    total_words: int
    order: int
    smoothing: float
    history_size: int
    history_limit: int
    file_size: int


# Session phases reported to observers
PHASE_LOAD = "load"
PHASE_CREATE = "create"
PHASE_TRAIN = "train"
PHASE_SAVE = "save"
PHASE_PREDICT = "predict"
PHASE_CLEAR = "clear"


# Protocols ------------------------------------------------------------------

@runtime_checkable
class PredictorProtocol(Protocol):
    """Minimal interface the session needs from a model."""

    def train(self, text: str) -> int:
        ...

    def predict_next(self, context: str, num_predictions: int = 3) -> List[Tuple[str, float]]:
        """
        Return list of (next_token, probability) sorted by descending probability.
        """
        ...

    def stats(self) -> ModelStats:
        ...


@runtime_checkable
class SessionObserver(Protocol):
    """
    Receives a callback after each session phase (load, create, train, save,
    predict, clear). `details` always carries "ok": bool; failures add
    "kind" and "error". Observers must not raise.
    """

    def on_event(self, phase: str, details: Dict[str, Any]) -> None:
        ...
