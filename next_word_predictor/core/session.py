# session.py
"""
PredictorSession - application facade around one NGramModel.

Purpose:
 - Own the model and its ModelStore
 - Load the persisted model on start (fresh model on failure), or build,
   optionally pre-train and persist a new one
 - Collect user text in a bounded history; retrain + persist when it fills
   or when asked to
 - Report each phase to an optional SessionObserver instead of printing

Public API:
  predict(context, num_predictions), train(text), accumulate(text),
  force_retrain(), save(), stats(), clear_history()

Store failures never escape this class: they become StoreResult values and
observer events.
"""

from __future__ import annotations
from typing import Any, Iterable, List, Optional, Tuple

from .ngram_model import NGramModel, DEFAULT_ORDER, DEFAULT_SMOOTHING
from .protocols import (
    ModelStats,
    SessionObserver,
    PHASE_CLEAR,
    PHASE_CREATE,
    PHASE_LOAD,
    PHASE_PREDICT,
    PHASE_SAVE,
    PHASE_TRAIN,
)
from next_word_predictor.utils.model_store import ModelStore, ModelStoreError, StoreResult

DEFAULT_HISTORY_LIMIT = 100


class PredictorSession:
    def __init__(
        self,
        model_path: str,
        order: int = DEFAULT_ORDER,
        smoothing: float = DEFAULT_SMOOTHING,
        sample_texts: Optional[Iterable[str]] = None,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clear_history_on_save_failure: bool = True,
        observer: Optional[SessionObserver] = None,
        store: Optional[ModelStore] = None,
    ):
        if history_limit < 1:
            raise ValueError(f"history_limit must be >= 1, got {history_limit}")
        self.store = store or ModelStore(model_path)
        self.history_limit = int(history_limit)
        self.clear_history_on_save_failure = bool(clear_history_on_save_failure)
        self.observer = observer
        self._history: List[str] = []
        self.load_result: Optional[StoreResult] = None
        self.last_save: Optional[StoreResult] = None

        if self.store.exists():
            self.model = self._load_or_fresh(order, smoothing)
        else:
            self.model = NGramModel(n=order, smoothing=smoothing)
            self._emit(PHASE_CREATE, ok=True, order=order, smoothing=smoothing)
            if sample_texts is not None:
                self._pretrain(sample_texts)

    # Lifecycle -----------------------------------------------------------
    def _load_or_fresh(self, order: int, smoothing: float) -> NGramModel:
        try:
            model = self.store.load()
        except ModelStoreError as e:
            self.load_result = StoreResult.failure(e)
            self._emit(PHASE_LOAD, ok=False, kind=e.kind, error=str(e), path=self.store.path)
            model = NGramModel(n=order, smoothing=smoothing)
            self._emit(PHASE_CREATE, ok=True, order=order, smoothing=smoothing)
            return model
        self.load_result = StoreResult.success(self.store.size())
        self._emit(PHASE_LOAD, ok=True, path=self.store.path, **model.stats())
        return model

    def _pretrain(self, texts: Iterable[str]) -> None:
        texts = list(texts)
        used = self.model.train_many(texts)
        self._emit(PHASE_TRAIN, ok=True, source="sample", texts=len(texts), used=used,
                   vocab_size=self.model.vocabulary_size(), total_words=self.model.total_words)
        self.save()

    def _emit(self, phase: str, **details: Any) -> None:
        if self.observer is not None:
            self.observer.on_event(phase, details)

    # Persistence ---------------------------------------------------------
    def save(self) -> StoreResult:
        """Persist the current model. Never raises on store errors."""
        try:
            nbytes = self.store.save(self.model)
        except ModelStoreError as e:
            result = StoreResult.failure(e)
            self._emit(PHASE_SAVE, ok=False, kind=e.kind, error=str(e), path=self.store.path)
        else:
            result = StoreResult.success(nbytes)
            self._emit(PHASE_SAVE, ok=True, path=self.store.path, nbytes=nbytes)
        self.last_save = result
        return result

    # History + training --------------------------------------------------
    def accumulate(self, text: str) -> Optional[StoreResult]:
        """
        Add user text to history. When history reaches the limit the model is
        retrained and saved; the save outcome is returned in that case.
        """
        self._history.append(text)
        if len(self._history) >= self.history_limit:
            return self._retrain()
        return None

    def _retrain(self) -> StoreResult:
        if not self._history:
            return StoreResult.success()

        pending = len(self._history)
        consumed = self.model.train(" ".join(self._history))
        self._emit(PHASE_TRAIN, ok=True, source="history", texts=pending, tokens=consumed,
                   vocab_size=self.model.vocabulary_size(), total_words=self.model.total_words)

        result = self.save()
        if result.ok or self.clear_history_on_save_failure:
            self._drop_history()
        return result

    def force_retrain(self) -> bool:
        """Retrain on pending history now. False if the model could not be saved."""
        return self._retrain().ok

    def train(self, text: str) -> int:
        """Train the model directly (no history, no save)."""
        return self.model.train(text)

    def clear_history(self) -> int:
        return self._drop_history()

    def _drop_history(self) -> int:
        n = len(self._history)
        self._history.clear()
        self._emit(PHASE_CLEAR, ok=True, cleared=n)
        return n

    @property
    def history(self) -> Tuple[str, ...]:
        return tuple(self._history)

    # Prediction ----------------------------------------------------------
    def predict(self, context: str, num_predictions: int = 3) -> List[Tuple[str, float]]:
        out = self.model.predict_next(context, num_predictions)
        self._emit(PHASE_PREDICT, ok=True, context=context, results=len(out))
        return out

    def stats(self) -> ModelStats:
        st = self.model.stats()
        st["history_size"] = len(self._history)
        st["history_limit"] = self.history_limit
        st["file_size"] = self.store.size()
        return st
