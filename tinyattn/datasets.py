import json
from pathlib import Path
from typing import Iterable, List, Tuple, Union

import torch.utils.data as data

Pair = Tuple[str, str]

# "hello world" split into 4-character contexts and the character that follows
HELLO_WORLD: List[Pair] = [
    ("hell", "o"),
    ("ello", " "),
    ("llo ", "w"),
    ("lo w", "o"),
    ("o wo", "r"),
    (" wor", "l"),
    ("worl", "d"),
]


class PairDataset(data.Dataset):
    def __init__(self, pairs: Iterable[Pair]):
        self.pairs: List[Pair] = []
        for context, target in pairs:
            if not isinstance(target, str) or len(target) != 1:
                raise ValueError(f"target must be a single character, got {target!r}")
            self.pairs.append((str(context), target))

    def __len__(self):
        return len(self.pairs)

    def __getitem__(self, idx):
        return self.pairs[idx]

    @classmethod
    def from_text(cls, text: str, window: int = 4) -> "PairDataset":
        """Every `window`-character slice of text paired with the character after it."""
        if window <= 0:
            raise ValueError(f"window must be positive, got {window}")
        return cls((text[i:i + window], text[i + window]) for i in range(len(text) - window))

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "PairDataset":
        """Reads [{"input": ..., "target": ...}, ...] or [[input, target], ...]."""
        rows = json.loads(Path(path).read_text(encoding="utf-8"))
        pairs = []
        for row in rows:
            if isinstance(row, dict):
                pairs.append((row["input"], row["target"]))
            else:
                context, target = row
                pairs.append((context, target))
        return cls(pairs)
