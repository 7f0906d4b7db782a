"""Read-only grids handed to callers: heightmap, flow field, biome map."""

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray


def _freeze(values: NDArray) -> NDArray:
    frozen = np.array(values, copy=True)
    frozen.setflags(write=False)
    return frozen


@dataclass(frozen=True)
class Heightmap:
    """Normalized elevation in [0, 1], shape (height, width), row-major."""

    values: NDArray[np.float32]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", _freeze(np.asarray(self.values, dtype=np.float32)))

    @property
    def width(self) -> int:
        return self.values.shape[1]

    @property
    def height(self) -> int:
        return self.values.shape[0]

    def get(self, x: int, y: int) -> float:
        """Elevation at column x, row y."""
        return float(self.values[y, x])


@dataclass(frozen=True)
class FlowField:
    """Accumulated flow normalized by its maximum, shape (height, width)."""

    values: NDArray[np.float32]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", _freeze(np.asarray(self.values, dtype=np.float32)))

    @property
    def width(self) -> int:
        return self.values.shape[1]

    @property
    def height(self) -> int:
        return self.values.shape[0]

    def get(self, x: int, y: int) -> float:
        """Normalized flow at column x, row y."""
        return float(self.values[y, x])


@dataclass(frozen=True)
class BiomeMap:
    """Biome index per cell; masked cells carry no biome (water).

    Indices refer to the ordered biome list of the config that produced the
    map.
    """

    indices: np.ma.MaskedArray

    def __post_init__(self) -> None:
        data = np.array(np.ma.getdata(self.indices), dtype=np.int16, copy=True)
        mask = np.array(np.ma.getmaskarray(self.indices), dtype=bool, copy=True)
        data[mask] = 0
        data.setflags(write=False)
        mask.setflags(write=False)
        object.__setattr__(self, "indices", np.ma.MaskedArray(data, mask=mask))

    @classmethod
    def from_optional(
        cls, indices: NDArray[np.integer], none_mask: NDArray[np.bool_]
    ) -> "BiomeMap":
        """Build a map from an index grid and a "no biome" mask."""
        return cls(np.ma.MaskedArray(indices, mask=none_mask))

    @property
    def width(self) -> int:
        return self.indices.shape[1]

    @property
    def height(self) -> int:
        return self.indices.shape[0]

    @property
    def none_mask(self) -> NDArray[np.bool_]:
        """True where the cell has no biome."""
        return np.ma.getmaskarray(self.indices)

    def get(self, x: int, y: int) -> int | None:
        """Biome index at column x, row y, or None."""
        if self.indices.mask[y, x]:
            return None
        return int(self.indices.data[y, x])

    def counts(self, biome_count: int) -> NDArray[np.int64]:
        """Number of cells assigned to each of ``biome_count`` biomes."""
        assigned = self.indices.data[~self.none_mask]
        return np.bincount(assigned, minlength=biome_count)[:biome_count]
