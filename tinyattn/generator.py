#!/usr/bin/env python3
"""
Train (or reload) a model on (context, target) pairs, then generate text.

Run:
    python3 -m tinyattn.generator --epochs 30000 --outdir artifacts/hello --prompt hell

If <outdir>/model.json already exists it is loaded instead of retrained.
"""

from __future__ import annotations
import argparse
from pathlib import Path

from .datasets import HELLO_WORLD, PairDataset
from .runtime import Generator
from .trainer import PairTrainer, TrainerConfig


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Train a single-block attention model with finite differences and generate text.")
    p.add_argument("--epochs", type=int, default=100)
    p.add_argument("--lr", type=float, default=0.1)
    p.add_argument("--eps", type=float, default=1e-4)
    p.add_argument("--embedding-size", type=int, default=None, help="Default: vocabulary size")
    p.add_argument("--init-scale", type=float, default=0.01)
    p.add_argument("--seed", type=int, default=None, help="Init seed (None=non-deterministic)")
    p.add_argument("--log-every", type=int, default=10)
    p.add_argument("--target-loss", type=float, default=None)
    p.add_argument("--pairs", type=str, default=None, help="JSON file of training pairs (default: hello world)")
    p.add_argument("--outdir", type=str, default="artifacts/model")
    p.add_argument("--prompt", type=str, default="hell")
    p.add_argument("--steps", type=int, default=10)
    p.add_argument("--lenient", action="store_true", help="Embed unknown context characters as zeros instead of failing")
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    outdir = Path(args.outdir)

    if (outdir / "model.json").exists():
        print(f"Loading {outdir / 'model.json'}")
        gen = Generator.from_artifacts(outdir, strict=not args.lenient)
    else:
        pairs = PairDataset.from_json(args.pairs) if args.pairs else PairDataset(HELLO_WORLD)
        cfg = TrainerConfig(
            epochs=args.epochs,
            lr=args.lr,
            eps=args.eps,
            embedding_size=args.embedding_size,
            init_scale=args.init_scale,
            seed=args.seed,
            log_every=args.log_every,
            target_loss=args.target_loss,
            strict=not args.lenient,
            outdir=str(outdir),
        )
        trainer = PairTrainer(pairs, cfg=cfg, autostart=True)
        gen = Generator(model=trainer.model, outdir=outdir)

    print("Generated:", gen.generate(args.prompt, steps=args.steps))


if __name__ == "__main__":
    main()
