"""
Simulation: noisy observation sets built from a ground-truth trajectory.
"""

from udeops.simulation.noise import NoiseInjector, noise_magnitude

__all__ = [
    "NoiseInjector",
    "noise_magnitude",
]
