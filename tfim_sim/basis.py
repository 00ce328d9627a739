# tfim_sim/basis.py
from dataclasses import dataclass
from typing import Iterator, Sequence
import numpy as np
from .errors import InvalidParameter, ResourceExceeded

# 2**L must fit a signed 64-bit index
MAX_SITES = 62
DEFAULT_MAX_BYTES = 2 << 30  # 2 GiB

def check_sites(L) -> int:
    """Validate a chain length before anything of size 2**L is allocated."""
    if isinstance(L, (bool, np.bool_)) or not isinstance(L, (int, np.integer)):
        raise InvalidParameter(f"L must be an integer, got {L!r}")
    L = int(L)
    if L <= 0:
        raise InvalidParameter(f"L must be positive, got {L}")
    if L > MAX_SITES:
        raise InvalidParameter(f"L={L} overflows a 64-bit basis index (max {MAX_SITES})")
    return L

def configuration_of(index: int, L: int) -> np.ndarray:
    """Spin configuration of basis state `index` (site s <-> bit s-1, 1 = down)."""
    L = check_sites(L)
    index = int(index)
    if not (0 <= index < (1 << L)):
        raise InvalidParameter(f"index {index} outside [0, 2**{L})")
    return np.array([(index >> k) & 1 for k in range(L)], dtype=bool)

def index_of(config: Sequence) -> int:
    """Inverse of configuration_of."""
    idx = 0
    for k, bit in enumerate(config):
        if bit:
            idx |= 1 << k
    return idx

def flip(index: int, site: int) -> int:
    """Index reached by flipping the spin at `site` (1-based)."""
    return index ^ (1 << (site - 1))

@dataclass(frozen=True, eq=False)
class Basis:
    L: int
    configs: np.ndarray  # shape (2**L, L), bool, row i = configuration_of(i)

    @property
    def dim(self) -> int:
        return self.configs.shape[0]

    def __len__(self) -> int:
        return self.dim

    def __getitem__(self, i) -> np.ndarray:
        return self.configs[i]

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter(self.configs)

    def configuration_of(self, i: int) -> np.ndarray:
        if not (0 <= i < self.dim):
            raise InvalidParameter(f"index {i} outside [0, {self.dim})")
        return self.configs[i]

    def index_of(self, config: Sequence) -> int:
        if len(config) != self.L:
            raise InvalidParameter(f"configuration has {len(config)} sites, basis has {self.L}")
        return index_of(config)

    def spin_sums(self) -> np.ndarray:
        """n_up - n_down for every configuration, shape (2**L,)."""
        n_down = self.configs.sum(axis=1)
        return (self.L - 2 * n_down).astype(np.int64)

def basis_bytes(L: int) -> int:
    """Peak bytes while generating the basis: int64 shift table plus the bool result."""
    N = 1 << L
    return 9 * L * N + 8 * N

def check_basis_size(L: int, max_bytes: int = DEFAULT_MAX_BYTES):
    need = basis_bytes(L)
    if need > max_bytes:
        raise ResourceExceeded(f"basis for L={L} needs ~{need} bytes, limit is {max_bytes}")

def generate_basis(L: int, max_bytes: int = DEFAULT_MAX_BYTES) -> Basis:
    L = check_sites(L)
    check_basis_size(L, max_bytes)
    idx = np.arange(1 << L, dtype=np.int64)
    # bit k of every index at once: row i, column k = (i >> k) & 1
    configs = ((idx[:, None] >> np.arange(L, dtype=np.int64)) & 1).astype(bool)
    configs.flags.writeable = False
    return Basis(L=L, configs=configs)
