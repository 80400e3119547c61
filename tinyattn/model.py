from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import torch
import torch.nn as nn

from .characters import DEFAULT_ALPHABET, Characters
from .errors import CorruptState, DimensionMismatch, NumericInstability
from .optim import FiniteDifferenceSGD

FORMAT_VERSION = 1
LOSS_EPS = 1e-9
MATRICES = ("Wq", "Wk", "Wv", "Wo")


def _is_number_matrix(rows) -> bool:
    # bool is an int subclass; JSON true/false must not load as 1.0/0.0
    return isinstance(rows, list) and all(
        isinstance(row, list)
        and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in row)
        for row in rows
    )


class Model(nn.Module):
    """
    Single-head self-attention next-character predictor.

    indices -> one-hot-ish embedding [L, E] -> Q/K/V -> attention [L, E]
            -> last position [E] -> Wo [E, V] -> softmax [V]

    Wq, Wk, Wv are fixed at their random initial values; only Wo is learned,
    through FiniteDifferenceSGD. Nothing here uses autograd.

    `strict` only applies when `vocabulary` is a string or sequence; a
    Characters instance is used as-is and keeps its own strict setting.
    """

    def __init__(self,
                 vocabulary: Union[str, Sequence[str], Characters] = DEFAULT_ALPHABET,
                 embedding_size: Optional[int] = None,
                 init_scale: float = 0.01,
                 strict: bool = True,
                 generator: Optional[torch.Generator] = None):
        super().__init__()
        if isinstance(vocabulary, Characters):
            self.chars = vocabulary
        else:
            self.chars = Characters(vocabulary, strict=strict)
        V = self.chars.num_characters
        E = V if embedding_size is None else embedding_size
        if isinstance(E, bool) or not isinstance(E, int) or E <= 0:
            raise ValueError(f"embedding_size must be a positive integer, got {embedding_size!r}")
        self.vocab_size = V
        self.embedding_size = E

        self.Wq = self._random(E, E, init_scale, generator)
        self.Wk = self._random(E, E, init_scale, generator)
        self.Wv = self._random(E, E, init_scale, generator)
        self.Wo = self._random(E, V, init_scale, generator)

    @staticmethod
    def _random(rows: int, cols: int, scale: float, generator) -> nn.Parameter:
        w = (torch.rand(rows, cols, dtype=torch.float64, generator=generator) * 2.0 - 1.0) * scale
        return nn.Parameter(w, requires_grad=False)

    def extra_repr(self) -> str:
        return f"vocab_size={self.vocab_size}, embedding_size={self.embedding_size}"

    @property
    def vocabulary(self) -> str:
        return self.chars.characters

    # -------- codec --------
    def encode(self, text: str) -> List[int]:
        return self.chars.encode(text)

    def decode(self, indices: Sequence[int]) -> str:
        return self.chars.decode(indices)

    # -------- forward stages --------
    @staticmethod
    def _matmul(a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
        if a.dim() == 0 or b.dim() == 0 or a.shape[-1] != b.shape[0]:
            raise DimensionMismatch(f"cannot multiply {tuple(a.shape)} by {tuple(b.shape)}")
        return a @ b

    @staticmethod
    def softmax(x: torch.Tensor) -> torch.Tensor:
        """Softmax over the last dim, shifted by the max so exp() cannot overflow."""
        e = torch.exp(x - x.max(dim=-1, keepdim=True).values)
        return e / e.sum(dim=-1, keepdim=True)

    def embed(self, indices: Sequence[int]) -> torch.Tensor:
        # index i lights up column i mod E, so characters collide when V > E;
        # negative indices (unknown characters in lenient mode) stay all-zero
        X = torch.zeros(len(indices), self.embedding_size, dtype=torch.float64)
        for row, i in enumerate(indices):
            if i >= 0:
                X[row, i % self.embedding_size] = 1.0
        return X

    def attention(self, X: torch.Tensor) -> torch.Tensor:
        """Scaled dot-product self-attention; returns one attended row per position."""
        Q = self._matmul(X, self.Wq)
        K = self._matmul(X, self.Wk)
        V = self._matmul(X, self.Wv)
        scores = self._matmul(Q, K.T) / math.sqrt(self.embedding_size)
        weights = self.softmax(scores)
        return self._matmul(weights, V)

    def forward(self, indices: Sequence[int]) -> torch.Tensor:
        if len(indices) == 0:
            raise ValueError("context must contain at least one character")
        attended = self.attention(self.embed(indices))
        logits = self._matmul(attended[-1], self.Wo)
        return self.softmax(logits)

    @torch.no_grad()
    def predict(self, context: str) -> List[float]:
        return self(self.encode(context)).tolist()

    def loss(self, probabilities: Union[Sequence[float], torch.Tensor], target_index: int) -> float:
        """Cross-entropy of one distribution against the target index."""
        if not 0 <= target_index < len(probabilities):
            raise IndexError(f"target index {target_index} outside distribution of size {len(probabilities)}")
        value = -math.log(float(probabilities[target_index]) + LOSS_EPS)
        if not math.isfinite(value):
            raise NumericInstability(f"loss is {value} for target index {target_index}")
        return value

    # -------- training --------
    def update(self, context: str, target_char: str, learning_rate: float = 0.1,
               optimizer: Optional[torch.optim.Optimizer] = None) -> float:
        """
        One online training step on a (context, target_char) pair.

        Both strings are encoded before any parameter is touched. Without an
        explicit optimizer a FiniteDifferenceSGD over Wo alone is used; when
        one is passed, its own lr applies and learning_rate is ignored.
        Returns the loss before the step.
        """
        indices = self.encode(context)
        target = self.chars.index(target_char)
        if optimizer is None:
            optimizer = FiniteDifferenceSGD([self.Wo], lr=learning_rate)

        def closure():
            return self.loss(self(indices), target)

        return optimizer.step(closure)

    # -------- persistence --------
    def export_state(self) -> Dict[str, Any]:
        state = {
            "format_version": FORMAT_VERSION,
            "vocabulary": list(self.chars.characters),
            "embedding_size": self.embedding_size,
        }
        for name in MATRICES:
            state[name] = getattr(self, name).detach().tolist()
        return state

    def save(self, path: Union[str, Path]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.export_state(), ensure_ascii=False, indent=2), encoding="utf-8")

    @classmethod
    def from_state(cls, state: Dict[str, Any], strict: bool = True) -> "Model":
        if not isinstance(state, dict):
            raise CorruptState(f"expected a JSON object, got {type(state).__name__}")
        missing = [k for k in ("vocabulary", "embedding_size") + MATRICES if k not in state]
        if missing:
            raise CorruptState(f"missing fields: {', '.join(missing)}")
        # files written before versioning carry no format_version
        version = state.get("format_version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise CorruptState(f"unsupported format_version {version!r}")

        try:
            chars = Characters(state["vocabulary"], strict=strict)
            model = cls(chars, embedding_size=state["embedding_size"], init_scale=0.0)
        except (TypeError, ValueError) as e:
            raise CorruptState(str(e)) from e

        E, V = model.embedding_size, model.vocab_size
        shapes = {"Wq": (E, E), "Wk": (E, E), "Wv": (E, E), "Wo": (E, V)}
        with torch.no_grad():
            for name in MATRICES:
                rows = state[name]
                if not _is_number_matrix(rows):
                    raise CorruptState(f"{name} must be a list of rows of numbers")
                try:
                    values = torch.tensor(rows, dtype=torch.float64)
                except (TypeError, ValueError) as e:
                    raise CorruptState(f"{name} is not a numeric matrix: {e}") from e
                if tuple(values.shape) != shapes[name]:
                    raise CorruptState(f"{name} has shape {tuple(values.shape)}, expected {shapes[name]}")
                getattr(model, name).copy_(values)
        return model

    @classmethod
    def load(cls, path: Union[str, Path], strict: bool = True) -> "Model":
        path = Path(path)
        try:
            state = json.loads(path.read_text(encoding="utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CorruptState(f"{path} is not a valid UTF-8 JSON document: {e}") from e
        return cls.from_state(state, strict=strict)
