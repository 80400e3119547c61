from __future__ import annotations

import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import torch

from .characters import DEFAULT_ALPHABET
from .datasets import Pair, PairDataset
from .model import Model
from .optim import FiniteDifferenceSGD


@dataclass
class TrainerConfig:
    epochs: int = 100                 # the long reference run uses 30000
    lr: float = 0.1
    eps: float = 1e-4                 # finite-difference perturbation
    embedding_size: int | None = None # None = vocabulary size
    init_scale: float = 0.01          # weights start uniform in [-init_scale, init_scale]
    seed: int | None = None           # None = non-deterministic init
    log_every: int = 10               # 0 = silent
    target_loss: float | None = None  # stop once the mean epoch loss reaches this
    strict: bool = True               # unknown context characters raise instead of embedding to zero
    vocabulary: str = DEFAULT_ALPHABET
    outdir: str | None = None         # None = keep everything in memory


class PairTrainer:
    """
    Online trainer: one finite-difference update per (context, target) pair,
    pairs visited in order, for cfg.epochs epochs.

    Instantiating this class runs training if autostart=True.

    Artifacts (only when cfg.outdir is set):
      - model.json    (see Model.save)
      - history.json  (per-epoch metrics)
      - config.json   (TrainerConfig)
    """
    def __init__(self,
                 pairs: Union[PairDataset, Iterable[Pair]],
                 cfg: Optional[TrainerConfig] = None,
                 model: Optional[Model] = None,
                 autostart: bool = True):
        self.cfg = cfg or TrainerConfig()
        self.dataset = pairs if isinstance(pairs, PairDataset) else PairDataset(pairs)

        if self.cfg.seed is not None:
            torch.manual_seed(self.cfg.seed)

        self.model = model if model is not None else Model(
            self.cfg.vocabulary,
            embedding_size=self.cfg.embedding_size,
            init_scale=self.cfg.init_scale,
            strict=self.cfg.strict,
        )
        self.optimizer = FiniteDifferenceSGD([self.model.Wo], lr=self.cfg.lr, eps=self.cfg.eps)

        self.outdir = Path(self.cfg.outdir) if self.cfg.outdir else None
        self.history: List[Dict[str, Any]] = []

        if autostart:
            self.run()

    # -------- public API --------
    def run(self) -> List[Dict[str, Any]]:
        start = len(self.history)
        for epoch in range(start + 1, start + self.cfg.epochs + 1):
            total = self._train_one()
            mean = total / max(len(self.dataset), 1)
            _, acc = self.evaluate()
            self.history.append({"epoch": epoch, "total_loss": total, "mean_loss": mean, "accuracy": acc})

            if self.cfg.log_every and (epoch == 1 or epoch % self.cfg.log_every == 0):
                print(f"Epoch {epoch:03d} | loss {total:.4f} | mean {mean:.4f} | acc {acc:.3f}")

            if self.cfg.target_loss is not None and mean <= self.cfg.target_loss:
                print(f"Reached target loss {self.cfg.target_loss} at epoch {epoch}. Done.")
                break

        self._finalize()
        return self.history

    @torch.no_grad()
    def evaluate(self) -> Tuple[float, float]:
        """Mean loss and arg-max accuracy over all pairs, without updating."""
        if len(self.dataset) == 0:
            return 0.0, 0.0
        total, hits = 0.0, 0
        for context, target in self.dataset:
            target_idx = self.model.chars.index(target)
            probs = self.model(self.model.encode(context))
            total += self.model.loss(probs, target_idx)
            hits += int(int(probs.argmax()) == target_idx)
        return total / len(self.dataset), hits / len(self.dataset)

    # -------- internals --------
    def _train_one(self) -> float:
        total = 0.0
        for context, target in self.dataset:
            total += self.model.update(context, target, optimizer=self.optimizer)
        return total

    def _finalize(self):
        if self.outdir is None:
            return
        self.outdir.mkdir(parents=True, exist_ok=True)
        self.model.save(self.outdir / "model.json")
        (self.outdir / "history.json").write_text(json.dumps(self.history, indent=2), encoding="utf-8")
        (self.outdir / "config.json").write_text(json.dumps(asdict(self.cfg), indent=2), encoding="utf-8")
