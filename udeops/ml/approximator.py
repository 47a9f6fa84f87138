"""
Function approximator used as the unknown part of a hybrid ODE.

RBFNetwork is a fully connected network evaluated as a pure function of
(input, flat parameter vector): it owns the topology only, never the weights.
Parameters travel explicitly through training and prediction.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np
import torch


def rbf(x: torch.Tensor) -> torch.Tensor:
    """Gaussian radial basis activation exp(-x^2)."""
    return torch.exp(-(x ** 2))


def identity(x: torch.Tensor) -> torch.Tensor:
    return x


class RBFNetwork:
    """
    MLP with rbf activation on hidden layers and identity on the output layer.

    Flat parameter layout, per layer in order: weight (out, in) row-major, then
    bias (out,).
    """

    def __init__(self, layer_sizes: Sequence[int] = (2, 5, 5, 5, 2)) -> None:
        """
        Args:
            layer_sizes: widths from input to output, e.g. (2, 5, 5, 5, 2).
        """
        sizes = tuple(int(s) for s in layer_sizes)
        if len(sizes) < 2 or any(s <= 0 for s in sizes):
            raise ValueError(f"layer_sizes must have >= 2 positive entries, got {layer_sizes}")
        self.layer_sizes = sizes
        self._shapes: List[Tuple[Tuple[int, int], Tuple[int]]] = [
            ((n_out, n_in), (n_out,)) for n_in, n_out in zip(sizes[:-1], sizes[1:])
        ]
        self.n_parameters = sum(w[0] * w[1] + b[0] for w, b in self._shapes)

    @property
    def input_dim(self) -> int:
        return self.layer_sizes[0]

    @property
    def output_dim(self) -> int:
        return self.layer_sizes[-1]

    def unflatten(self, theta: torch.Tensor) -> List[Tuple[torch.Tensor, torch.Tensor]]:
        """Split the flat vector into per-layer (weight, bias) views."""
        if theta.ndim != 1 or theta.numel() != self.n_parameters:
            raise ValueError(
                f"theta must be a flat vector of {self.n_parameters} parameters, "
                f"got shape {tuple(theta.shape)}"
            )
        layers = []
        offset = 0
        for (n_out, n_in), (n_b,) in self._shapes:
            w = theta[offset:offset + n_out * n_in].view(n_out, n_in)
            offset += n_out * n_in
            b = theta[offset:offset + n_b]
            offset += n_b
            layers.append((w, b))
        return layers

    def __call__(self, x: torch.Tensor, theta: torch.Tensor) -> torch.Tensor:
        """Evaluate on x of shape (input_dim,) or (batch, input_dim)."""
        layers = self.unflatten(theta)
        h = x
        last = len(layers) - 1
        for k, (w, b) in enumerate(layers):
            h = h @ w.T + b
            h = identity(h) if k == last else rbf(h)
        return h

    def evaluate(self, x: np.ndarray, theta: np.ndarray) -> np.ndarray:
        """numpy convenience wrapper (no gradient tracking)."""
        with torch.no_grad():
            out = self(torch.from_numpy(np.array(x, dtype=np.float64)),
                       torch.from_numpy(np.array(theta, dtype=np.float64)))
        return out.cpu().numpy()

    def initial_parameters(self, generator: Optional[torch.Generator] = None) -> torch.Tensor:
        """
        Glorot-uniform weights and zero biases, drawn from `generator`.

        Returns a float64 flat vector of length n_parameters.
        """
        chunks = []
        for (n_out, n_in), (n_b,) in self._shapes:
            limit = np.sqrt(6.0 / (n_in + n_out))
            u = torch.rand(n_out * n_in, generator=generator, dtype=torch.float64)
            chunks.append((2.0 * u - 1.0) * limit)
            chunks.append(torch.zeros(n_b, dtype=torch.float64))
        return torch.cat(chunks)

    def __repr__(self) -> str:
        return f"RBFNetwork(layer_sizes={self.layer_sizes}, n_parameters={self.n_parameters})"
