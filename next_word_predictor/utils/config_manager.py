# config_manager.py - JSON config manager

import json
import os
from typing import Any, Dict

DEFAULTS: Dict[str, Any] = {
    "model_path": os.path.join("data", "model", "ngram.bin"),
    "corpus_path": os.path.join("data", "corpus.txt"),
    "order": 3,
    "smoothing": 0.1,
    "history_limit": 100,
    "num_predictions": 5,
    "clear_history_on_save_failure": True,
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _coerce(default: Any, val: Any) -> Any:
    if isinstance(default, bool):
        if isinstance(val, bool):
            return val
        s = str(val).strip().lower()
        if s in _TRUE:
            return True
        if s in _FALSE:
            return False
        raise ValueError(f"not a boolean: {val!r}")
    return type(default)(val)


class Config:
    def __init__(self, path="config.json"):
        self.path = path
        self.data = dict(DEFAULTS)
        self._load()

    def _load(self):
        if os.path.exists(self.path):
            try:
                with open(self.path, "r", encoding="utf8") as f:
                    loaded = json.load(f)
            except (OSError, ValueError):
                # unreadable config, keep defaults
                return
            if isinstance(loaded, dict):
                for k, v in loaded.items():
                    if k in self.data:
                        try:
                            self.data[k] = _coerce(DEFAULTS[k], v)
                        except (TypeError, ValueError):
                            pass  # bad value, keep default
        else:
            self.save()

    def save(self):
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        with open(self.path, "w", encoding="utf8") as f:
            json.dump(self.data, f, indent=2)

    def get(self, key, default=None):
        return self.data.get(key, default)

    def set(self, key, val):
        if key not in self.data:
            raise KeyError(f"No such option: {key}")
        self.data[key] = _coerce(DEFAULTS[key], val)
        self.save()

    def items(self):
        return self.data.items()

    def session_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for PredictorSession."""
        return {
            "model_path": self.data["model_path"],
            "order": self.data["order"],
            "smoothing": self.data["smoothing"],
            "history_limit": self.data["history_limit"],
            "clear_history_on_save_failure": self.data["clear_history_on_save_failure"],
        }
