"""Reproducibility helpers: global seeding and explicit per-run random sources."""

import random
from typing import Optional, Tuple

import numpy as np
import torch
from loguru import logger


def seed_everything(seed: int) -> None:
    """Set deterministic seeds for Python, NumPy and PyTorch.

    Args:
        seed: non-negative seed shared by all libraries.

    Raises:
        ValueError: if seed is negative.
    """
    if seed < 0:
        raise ValueError(f"Seed must be non-negative, got {seed}")
    random.seed(seed)
    np.random.seed(seed)  # noqa: NPY002
    torch.manual_seed(seed)
    logger.info("All random seeds set to {}", seed)


def make_random_sources(
    seed: int, run_index: Optional[int] = None
) -> Tuple[np.random.Generator, torch.Generator]:
    """
    Build the (noise, initialization) random sources.

    With run_index=None the sources are the shared streams of a whole batch;
    with a run index they are derived from (seed, run_index) only, so the run
    can be reproduced on its own.
    """
    entropy = [seed] if run_index is None else [seed, run_index]
    rng = np.random.default_rng(entropy)
    gen = torch.Generator()
    gen.manual_seed(int(np.random.SeedSequence(entropy).generate_state(1)[0]))
    return rng, gen
