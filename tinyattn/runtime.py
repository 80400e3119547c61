from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .model import Model


@dataclass
class Generator:
    """Greedy text generation: arg-max next character over a sliding context window."""
    model: Model
    window: int = 4
    outdir: Optional[Path] = None

    def next_char(self, context: str) -> str:
        probs = self.model.predict(context)
        best = max(range(len(probs)), key=probs.__getitem__)  # first index wins ties
        return self.model.decode([best])

    def generate(self, seed: str, steps: int = 10) -> str:
        text = seed
        for _ in range(steps):
            text += self.next_char(text[-self.window:])
        return text

    @classmethod
    def from_artifacts(cls, path: Union[str, Path], window: int = 4, strict: bool = True) -> "Generator":
        """Load from a model.json file or a trainer artifacts folder containing one."""
        path = Path(path)
        outdir = path if path.is_dir() else path.parent
        model_file = path / "model.json" if path.is_dir() else path
        return cls(model=Model.load(model_file, strict=strict), window=window, outdir=outdir)
