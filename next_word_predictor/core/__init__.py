"""
next_word_predictor.core

The prediction engine.
Contains:
 - the tokenizer shared by training and prediction
 - the n-gram model (NGramModel)
 - the session facade that owns a model and its history (PredictorSession)
 - Protocols / typed dicts used between them
"""

from .tokenizer import tokenize, normalize_text
from .ngram_model import NGramModel
from .protocols import ModelStats, SessionObserver
from .session import PredictorSession

__all__ = [
    "tokenize",
    "normalize_text",
    "NGramModel",
    "ModelStats",
    "SessionObserver",
    "PredictorSession",
]
