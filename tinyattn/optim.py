from typing import Callable, Iterable

import torch
from torch.optim import Optimizer


class FiniteDifferenceSGD(Optimizer):
    """
    Plain gradient descent with forward finite-difference gradient estimates.

    Every scalar entry of every parameter is handled on its own, in row-major
    order:

        p[k] += eps;  perturbed = closure()
        grad = (perturbed - baseline) / eps
        p[k] -= eps;  p[k] -= lr * grad
        baseline = closure()

    Entries updated earlier in the step are already moved when later entries
    are measured, so the unperturbed baseline is re-evaluated after every
    entry. A step costs two closure evaluations per entry.

    step() returns the loss measured before any parameter moved. The
    per-entry estimates of the last step are kept in state[p]["fd_grad"].
    """

    def __init__(self, params: Iterable[torch.Tensor], lr: float = 0.1, eps: float = 1e-4):
        if lr < 0.0:
            raise ValueError(f"Invalid learning rate: {lr}")
        if eps <= 0.0:
            raise ValueError(f"Invalid perturbation size: {eps}")
        defaults = dict(lr=lr, eps=eps)
        super().__init__(params, defaults)

    @torch.no_grad()
    def step(self, closure: Callable[[], float] = None) -> float:
        if closure is None:
            raise RuntimeError("FiniteDifferenceSGD.step() needs a closure that re-evaluates the loss")

        original = baseline = float(closure())
        for group in self.param_groups:
            lr, eps = group["lr"], group["eps"]
            for p in group["params"]:
                flat = p.view(-1)
                grad = torch.zeros_like(flat)
                for k in range(flat.numel()):
                    flat[k] += eps
                    perturbed = float(closure())
                    grad[k] = (perturbed - baseline) / eps
                    flat[k] -= eps
                    flat[k] -= lr * grad[k]
                    baseline = float(closure())
                self.state[p]["fd_grad"] = grad.view_as(p)
        return original
