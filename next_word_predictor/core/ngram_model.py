# ngram_model.py
# order-N n-gram language model for next-word prediction.

from __future__ import annotations
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple
from collections import Counter

from .tokenizer import tokenize, ngrams
from .protocols import ModelStats

Word = str
Score = float
Context = Tuple[Word, ...]
NextList = List[Tuple[Word, Score]]

DEFAULT_ORDER = 3
DEFAULT_SMOOTHING = 0.1


def _ranked(scores: Mapping[Word, float]) -> List[Tuple[Word, float]]:
    # highest score first, ties broken on the token so output is reproducible
    return sorted(scores.items(), key=lambda kv: (-kv[1], kv[0]))


class NGramModel:
    """
    N-gram predictor with:
      - continuation counts for every order 2..N
      - unigram counts, running word total and vocabulary
      - additive (Laplace) smoothing
      - back-off that sums smoothed probabilities over every matching order,
        topped up from raw unigram frequency

    The count tables are owned by the model; `train` is the only mutator and
    everything exposed for reading is a read-only view.
    """

    def __init__(self, n: int = DEFAULT_ORDER, smoothing: float = DEFAULT_SMOOTHING) -> None:
        if int(n) < 2:
            raise ValueError(f"n-gram order must be >= 2, got {n}")
        if not float(smoothing) > 0.0:
            raise ValueError(f"smoothing constant must be > 0, got {smoothing}")
        self._n = int(n)
        self._alpha = float(smoothing)
        # order -> context tuple -> Counter(next word)
        self._models: Dict[int, Dict[Context, Counter]] = {k: {} for k in range(2, self._n + 1)}
        self._uni: Counter = Counter()
        self._total: int = 0
        self._vocab: Set[Word] = set()

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------
    def train(self, text: str) -> int:
        """
        Learn counts from `text`. Returns the number of tokens consumed
        (0 means the text normalised to nothing and the model is untouched).
        """
        toks = tokenize(text)
        if not toks:
            return 0

        self._vocab.update(toks)
        self._uni.update(toks)
        self._total += len(toks)

        for k in range(2, self._n + 1):
            table = self._models[k]
            for gram in ngrams(toks, k):
                ctx, word = gram[:-1], gram[-1]
                counter = table.get(ctx)
                if counter is None:
                    counter = table[ctx] = Counter()
                counter[word] += 1
        return len(toks)

    def train_many(self, texts: Iterable[str]) -> int:
        """Train on each text in turn; returns how many of them contributed tokens."""
        used = 0
        for t in texts:
            if self.train(t):
                used += 1
        return used

    # ------------------------------------------------------------------
    # Probability computation
    # ------------------------------------------------------------------
    def _smoothed(self, count: int, total: int, vocab_size: int) -> Score:
        return (count + self._alpha) / (total + self._alpha * vocab_size)

    def _compute_probs(self, counter: Counter) -> Dict[Word, Score]:
        """
        Convert one context's continuation Counter into Laplace-smoothed
        probabilities over the whole vocabulary.
        """
        total = sum(counter.values())
        vocab_size = len(self._vocab)
        return {w: self._smoothed(c, total, vocab_size) for w, c in counter.items()}

    def probability(self, word: Word, context: str = "") -> Score:
        """
        Smoothed probability of `word` following the longest context of
        `context` the model has seen. Falls back to the smoothed unigram
        estimate when no order matches.
        """
        toks = tokenize(context)
        vocab_size = len(self._vocab)
        for size in range(min(self._n, len(toks) + 1), 1, -1):
            counter = self._models[size].get(tuple(toks[len(toks) - size + 1:]))
            if counter:
                return self._smoothed(counter.get(word, 0), sum(counter.values()), vocab_size)
        return self._smoothed(self._uni.get(word, 0), self._total, max(vocab_size, 1))

    # ------------------------------------------------------------------
    # Prediction (public API)
    # ------------------------------------------------------------------
    def predict_next(self, context: str, num_predictions: int = 3) -> NextList:
        """
        Returns up to `num_predictions` (word, probability) tuples, most
        likely first. An empty context ranks words by raw frequency.
        """
        if num_predictions <= 0:
            return []

        toks = tokenize(context)
        if not toks:
            return self._top_unigrams(num_predictions)

        candidates: Dict[Word, Score] = {}
        for size in range(min(self._n, len(toks) + 1), 1, -1):
            ctx = tuple(toks[len(toks) - size + 1:])
            counter = self._models[size].get(ctx)
            if counter:
                for w, p in self._compute_probs(counter).items():
                    candidates[w] = candidates.get(w, 0.0) + p
            if len(candidates) >= num_predictions:
                break

        if len(candidates) < num_predictions:
            self._backfill(candidates, num_predictions - len(candidates))

        return _ranked(candidates)[:num_predictions]

    def _backfill(self, candidates: Dict[Word, Score], remaining: int) -> None:
        # pad with smoothed unigram estimates, never touching existing entries
        total = self._total if self._total > 0 else 1
        vocab_size = len(self._vocab) or 1
        for w, c in _ranked(self._uni):
            if remaining <= 0:
                break
            if w in candidates:
                continue
            candidates[w] = self._smoothed(c, total, vocab_size)
            remaining -= 1

    def _top_unigrams(self, n: int) -> NextList:
        if not self._uni:
            return []
        total = self._total if self._total > 0 else 1
        return [(w, c / total) for w, c in _ranked(self._uni)[:n]]

    # ------------------------------------------------------------------
    # Introspection helpers
    # ------------------------------------------------------------------
    @property
    def order(self) -> int:
        return self._n

    @property
    def smoothing(self) -> float:
        return self._alpha

    @property
    def total_words(self) -> int:
        return self._total

    @property
    def vocabulary(self) -> FrozenSet[Word]:
        return frozenset(self._vocab)

    @property
    def unigram_counts(self) -> Mapping[Word, int]:
        return MappingProxyType(self._uni)

    def continuations(self, k: int) -> Mapping[Context, Mapping[Word, int]]:
        """Read-only view of order `k`'s context -> next-word counts."""
        if k not in self._models:
            raise KeyError(f"order {k} not in 2..{self._n}")
        return MappingProxyType({ctx: MappingProxyType(c) for ctx, c in self._models[k].items()})

    def vocabulary_size(self) -> int:
        return len(self._vocab)

    def stats(self) -> ModelStats:
        return {
            "vocab_size": len(self._vocab),
            "total_words": self._total,
            "order": self._n,
            "smoothing": self._alpha,
        }

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def save_state(self) -> Dict[str, Any]:
        """Plain-builtin snapshot of the full model (what the model store pickles)."""
        return {
            "n": self._n,
            "smoothing": self._alpha,
            "models": {
                k: {ctx: dict(c) for ctx, c in table.items()}
                for k, table in self._models.items()
            },
            "uni": dict(self._uni),
            "total": self._total,
            "vocab": sorted(self._vocab),
        }

    @classmethod
    def from_state(cls, data: Mapping[str, Any]) -> "NGramModel":
        """
        Rebuild a model from `save_state()` output. Raises ValueError when the
        snapshot breaks the model's invariants.
        """
        model = cls(n=int(data["n"]), smoothing=float(data["smoothing"]))

        models = data["models"]
        if set(models) != set(range(2, model._n + 1)):
            raise ValueError(f"orders {sorted(models)} do not match n={model._n}")

        vocab = set(data["vocab"])
        for k, table in models.items():
            rebuilt: Dict[Context, Counter] = {}
            for ctx, nexts in table.items():
                ctx = tuple(ctx)
                if len(ctx) != k - 1:
                    raise ValueError(f"order {k} context {ctx!r} has length {len(ctx)}")
                counter = Counter({str(w): int(c) for w, c in nexts.items()})
                if any(c <= 0 for c in counter.values()):
                    raise ValueError(f"non-positive count under context {ctx!r}")
                if not vocab.issuperset(ctx) or not vocab.issuperset(counter):
                    raise ValueError(f"context {ctx!r} uses tokens outside the vocabulary")
                rebuilt[ctx] = counter
            model._models[int(k)] = rebuilt

        model._uni = Counter({str(w): int(c) for w, c in data["uni"].items()})
        model._total = int(data["total"])
        model._vocab = vocab
        if sum(model._uni.values()) != model._total:
            raise ValueError("unigram counts do not add up to the word total")
        return model

    def __repr__(self) -> str:
        return f"NGramModel(n={self._n}, smoothing={self._alpha}, vocab={len(self._vocab)}, words={self._total})"
