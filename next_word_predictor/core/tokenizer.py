# next_word_predictor/core/tokenizer.py
# basic normaliser + word tokenizer shared by training and prediction

import re
from typing import Iterator, List, Sequence, Tuple

# anything that isn't a word char, whitespace or an apostrophe becomes a space
_strip_re = re.compile(r"[^\w\s']")


def normalize_text(s: str) -> str:
    """Lower-case and blank out punctuation (apostrophes are kept for contractions)."""
    if not s:
        return ""
    return _strip_re.sub(" ", s.lower())


def tokenize(s: str) -> List[str]:
    """
    Return list of word tokens.
    tokenize("Hello, World!  it's  HERE") -> ["hello", "world", "it's", "here"]
    """
    if not s:
        return []
    return [t for t in normalize_text(s).split() if t]


def ngrams(tokens: Sequence[str], size: int) -> Iterator[Tuple[str, ...]]:
    """Yield every contiguous window of `size` tokens (nothing if the sequence is shorter)."""
    if size <= 0:
        return
    for i in range(len(tokens) - size + 1):
        yield tuple(tokens[i:i + size])
