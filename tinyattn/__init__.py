from .characters import Characters, DEFAULT_ALPHABET
from .datasets import HELLO_WORLD, PairDataset
from .errors import (TinyAttnError, UnknownCharacter, DimensionMismatch,
                     NumericInstability, CorruptState)
from .model import Model
from .optim import FiniteDifferenceSGD
from .trainer import PairTrainer, TrainerConfig
from .runtime import Generator

__all__ = [
    "Characters", "DEFAULT_ALPHABET", "HELLO_WORLD", "PairDataset",
    "TinyAttnError", "UnknownCharacter", "DimensionMismatch",
    "NumericInstability", "CorruptState",
    "Model", "FiniteDifferenceSGD", "PairTrainer", "TrainerConfig", "Generator",
    "train", "load",
]
__version__ = "0.1.0"

def train(pairs=HELLO_WORLD, *,
          epochs: int = 100,
          lr: float = 0.1,
          embedding_size: int | None = None,   # None = vocabulary size
          init_scale: float = 0.01,
          seed: int | None = None,
          log_every: int = 10,
          target_loss: float | None = None,
          vocabulary: str = DEFAULT_ALPHABET,
          outdir: str | None = None) -> Generator:
    """Train a fresh model on (context, target) pairs and return a Generator."""
    cfg = TrainerConfig(
        epochs=epochs, lr=lr, embedding_size=embedding_size, init_scale=init_scale,
        seed=seed, log_every=log_every, target_loss=target_loss,
        vocabulary=vocabulary, outdir=outdir,
    )
    trainer = PairTrainer(pairs, cfg=cfg, autostart=True)
    return Generator(model=trainer.model, outdir=trainer.outdir)

def load(path: str) -> Generator:
    """Load a previously trained model from model.json or an artifacts folder."""
    return Generator.from_artifacts(path)
