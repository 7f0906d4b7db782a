"""Noise fields for terrain and climate generation.

Every field is a pure function of its seed and the sample coordinates, so a
cell's value never depends on which other cells are sampled or in which
order. Fields are evaluated on whole coordinate arrays at once.
"""

from dataclasses import dataclass
from typing import Protocol

import numpy as np
from numpy.typing import ArrayLike, NDArray

# Lattice gradients: four diagonals and four axes
_GRADIENTS = np.array(
    [[1, 1], [-1, 1], [1, -1], [-1, -1], [1, 0], [-1, 0], [0, 1], [0, -1]],
    dtype=np.float64,
)


class NoiseField(Protocol):
    """A deterministic scalar field over continuous 2D coordinates."""

    def sample(self, x: ArrayLike, y: ArrayLike) -> NDArray[np.float64]:
        """Sample the field, returning values in [-1, 1]."""
        ...


def _fade(t: NDArray[np.float64]) -> NDArray[np.float64]:
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def _lerp(
    a: NDArray[np.float64], b: NDArray[np.float64], t: NDArray[np.float64]
) -> NDArray[np.float64]:
    return a + t * (b - a)


class PerlinNoise:
    """2D gradient noise on a seed-permuted integer lattice.

    Args:
        seed: Seed for the lattice permutation. Only the low 32 bits are used.
    """

    def __init__(self, seed: int):
        self.seed = seed
        rng = np.random.default_rng(seed & 0xFFFFFFFF)
        perm = rng.permutation(256).astype(np.int64)
        self._perm = np.concatenate([perm, perm])

    def _gradient_dot(
        self,
        hashed: NDArray[np.int64],
        dx: NDArray[np.float64],
        dy: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        g = _GRADIENTS[hashed & 7]
        return g[..., 0] * dx + g[..., 1] * dy

    def sample(self, x: ArrayLike, y: ArrayLike) -> NDArray[np.float64]:
        """Sample noise at coordinates (x, y).

        Args:
            x: X coordinates (any shape, broadcast against y).
            y: Y coordinates.

        Returns:
            Noise values in [-1, 1], zero on lattice points.
        """
        x, y = np.broadcast_arrays(
            np.asarray(x, dtype=np.float64), np.asarray(y, dtype=np.float64)
        )
        x0 = np.floor(x)
        y0 = np.floor(y)
        xf = x - x0
        yf = y - y0
        xi = x0.astype(np.int64) & 255
        yi = y0.astype(np.int64) & 255

        p = self._perm
        a = p[xi]
        b = p[xi + 1]
        aa = p[a + yi]
        ab = p[a + yi + 1]
        ba = p[b + yi]
        bb = p[b + yi + 1]

        u = _fade(xf)
        v = _fade(yf)

        lower = _lerp(
            self._gradient_dot(aa, xf, yf), self._gradient_dot(ba, xf - 1.0, yf), u
        )
        upper = _lerp(
            self._gradient_dot(ab, xf, yf - 1.0),
            self._gradient_dot(bb, xf - 1.0, yf - 1.0),
            u,
        )
        return np.clip(_lerp(lower, upper, v), -1.0, 1.0)


def fbm(
    field: NoiseField,
    x: ArrayLike,
    y: ArrayLike,
    octaves: int = 3,
    frequency: float = 1.0,
    lacunarity: float = 2.0,
    gain: float = 0.5,
) -> NDArray[np.float64]:
    """Sum octaves of a noise field (fractal Brownian motion).

    Amplitude starts at 1 and is not renormalized, so the result lies in
    [-sum(gain**i), sum(gain**i)].

    Args:
        field: Noise field to sample.
        x: X coordinates.
        y: Y coordinates.
        octaves: Number of noise layers to sum.
        frequency: Frequency of the first octave.
        lacunarity: Frequency multiplier between octaves.
        gain: Amplitude multiplier between octaves.

    Returns:
        Summed noise values.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    result = np.zeros(np.broadcast_shapes(x.shape, y.shape), dtype=np.float64)

    amplitude = 1.0
    for _ in range(octaves):
        result += amplitude * field.sample(x * frequency, y * frequency)
        amplitude *= gain
        frequency *= lacunarity

    return result


def smoothstep(edge0: float, edge1: float, x: NDArray[np.float64]) -> NDArray[np.float64]:
    """Smooth Hermite interpolation between 0 and 1.

    Args:
        edge0: Lower edge of transition.
        edge1: Upper edge of transition.
        x: Input values.

    Returns:
        Smoothly interpolated values in [0, 1].
    """
    t = np.clip((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


@dataclass(frozen=True)
class TerrainNoise:
    """Noise fields used by relief synthesis and erosion."""

    continent: NoiseField
    detail: NoiseField
    ridge_primary: NoiseField
    ridge_secondary: NoiseField
    warp: NoiseField
    lake_gate: NoiseField
    fault: NoiseField
    cross_fault: NoiseField

    @classmethod
    def from_seed(cls, seed: int) -> "TerrainNoise":
        """Derive every terrain field from one relief seed."""
        base = seed & 0xFFFFFFFF
        return cls(
            continent=PerlinNoise(base),
            detail=PerlinNoise(base ^ 0x1234_5678),
            ridge_primary=PerlinNoise(base ^ 0x8765_4321),
            ridge_secondary=PerlinNoise(base + 7777),
            warp=PerlinNoise(base + 999),
            lake_gate=PerlinNoise(base + 31337),
            fault=PerlinNoise(base + 4040),
            cross_fault=PerlinNoise(base + 5050),
        )

    @classmethod
    def uniform(cls, field: NoiseField) -> "TerrainNoise":
        """Use a single field for every role."""
        return cls(field, field, field, field, field, field, field, field)


@dataclass(frozen=True)
class ClimateNoise:
    """Noise fields jittering the climate model."""

    temperature: NoiseField
    humidity: NoiseField

    @classmethod
    def from_seed(cls, seed: int) -> "ClimateNoise":
        """Derive the climate fields from the world seed."""
        base = seed & 0xFFFFFFFF
        return cls(
            temperature=PerlinNoise(base + 8888),
            humidity=PerlinNoise(base + 7777),
        )

    @classmethod
    def uniform(cls, field: NoiseField) -> "ClimateNoise":
        """Use a single field for every role."""
        return cls(field, field)
