# tfim_sim/hamiltonian.py
"""
Transverse-field Ising chain on the computational basis:

    H = - sum_{s<L} Z_s Z_{s+1}  -  h * sum_s X_s      (open chain, J = 1)

Z_s Z_{s+1} is diagonal (+1 aligned, -1 anti-aligned), X_s flips bit s-1 of the
basis index, so the matrix is assembled directly from bit operations without
Kronecker products.
"""
import logging
import math
import numbers
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union
import numpy as np
from scipy import sparse as sp
from . import build_serial
from .basis import DEFAULT_MAX_BYTES, Basis, basis_bytes, check_sites, generate_basis
from .errors import InvalidParameter, NumericInvariantViolation, ResourceExceeded

log = logging.getLogger(__name__)

SYMMETRY_TOL = 1e-12

Field = Union[float, Callable[[float], float]]

def check_real(name: str, value) -> float:
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
        raise InvalidParameter(f"{name} must be a real number, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidParameter(f"{name} must be finite, got {value}")
    return value

def estimate_bytes(L: int, sparse: bool = False) -> int:
    """Rough memory footprint of basis + Hamiltonian for a chain of L sites."""
    N = 1 << L
    basis = basis_bytes(L)
    if sparse:
        # CSR: (L+1) nonzeros/row, 8B value + 8B column index, plus row pointers
        return basis + (L + 1) * N * 16 + 8 * (N + 1)
    return basis + 8 * N * N

def check_resources(L: int, sparse: bool = False, max_bytes: int = DEFAULT_MAX_BYTES):
    need = estimate_bytes(L, sparse)
    if need > max_bytes:
        kind = "sparse" if sparse else "dense"
        raise ResourceExceeded(
            f"{kind} Hamiltonian for L={L} needs ~{need} bytes, limit is {max_bytes}")

@dataclass(frozen=True, eq=False)
class Hamiltonian:
    L: int
    h: float
    matrix: Union[np.ndarray, sp.csr_matrix]
    backend: str = "serial"
    sparse: bool = False

    @property
    def dim(self) -> int:
        return self.matrix.shape[0]

    @property
    def is_sparse(self) -> bool:
        return sp.issparse(self.matrix)

    def toarray(self) -> np.ndarray:
        return self.matrix.toarray() if self.is_sparse else np.asarray(self.matrix)

    def diagonal(self) -> np.ndarray:
        return np.asarray(self.matrix.diagonal())

    def field_at(self, t: float) -> float:
        # static field; t is only validated
        check_real("t", t)
        return self.h

    def at(self, t: float) -> "Hamiltonian":
        check_real("t", t)
        return self

    def check_symmetric(self, tol=SYMMETRY_TOL):
        if self.is_sparse:
            asym = abs(self.matrix - self.matrix.T)
            err = float(asym.max()) if asym.nnz else 0.0
        else:
            err = float(np.max(np.abs(self.matrix - self.matrix.T)))
        if err > tol:
            raise NumericInvariantViolation(f"Hamiltonian is not symmetric: max|H-H^T|={err}")

@dataclass(frozen=True, eq=False)
class TimeDependentHamiltonian:
    """H(t) with field h(t); snapshots are built on demand and never cached."""
    L: int
    field: Callable[[float], float]
    backend: str = "serial"
    sparse: bool = False

    def field_at(self, t: float) -> float:
        t = check_real("t", t)
        try:
            h = self.field(t)
        except (ValueError, ArithmeticError) as e:
            raise InvalidParameter(f"field h({t}) raised {type(e).__name__}: {e}") from e
        return check_real(f"h({t})", h)

    def at(self, t: float) -> Hamiltonian:
        H, _ = build_hamiltonian(self.L, self.field_at(t), backend=self.backend, sparse=self.sparse)
        return H

def _kernels(backend: str):
    if backend == "serial":
        return build_serial
    if backend == "numba":
        try:
            from . import build_numba
        except Exception as e:
            raise RuntimeError("Numba backend not available. Did you `pip install numba`?") from e
        return build_numba
    raise NotImplementedError(f"Unknown backend: {backend}")

def _assemble_sparse(L: int, h: float, diag: np.ndarray) -> sp.csr_matrix:
    N = 1 << L
    rows = np.repeat(np.arange(N, dtype=np.int64), L)
    masks = np.tile(np.left_shift(1, np.arange(L, dtype=np.int64)), N)
    cols = rows ^ masks
    vals = np.full(rows.shape[0], -h, dtype=np.float64)
    idx = np.arange(N, dtype=np.int64)
    H = sp.coo_matrix(
        (np.concatenate([diag, vals]), (np.concatenate([idx, rows]), np.concatenate([idx, cols]))),
        shape=(N, N),
    ).tocsr()
    H.sort_indices()
    return H

def build_hamiltonian(L: int, h: Field, backend: str = "serial", sparse: bool = False,
                      t: Optional[float] = None,
                      max_bytes: int = DEFAULT_MAX_BYTES) -> Tuple[Hamiltonian, Basis]:
    """
    Build the (2**L, 2**L) TFIM Hamiltonian and its basis.

    `h` may be a number or a function of time; in the latter case `t` selects
    the snapshot H(t). Dense by default, CSR with sparse=True.
    """
    L = check_sites(L)
    if callable(h):
        if t is None:
            raise InvalidParameter("time-dependent field needs a time t")
        h = TimeDependentHamiltonian(L, h).field_at(t)
    else:
        if t is not None:
            check_real("t", t)
        h = check_real("h", h)
    check_resources(L, sparse=sparse, max_bytes=max_bytes)
    kern = _kernels(backend)

    basis = generate_basis(L, max_bytes=max_bytes)
    if sparse:
        matrix = _assemble_sparse(L, h, kern.diagonal(L))
    else:
        N = 1 << L
        matrix = np.zeros((N, N), dtype=np.float64)
        kern.fill_dense(matrix, L, h)
        matrix.flags.writeable = False
    log.debug("built %s Hamiltonian L=%d h=%g backend=%s", "sparse" if sparse else "dense", L, h, backend)
    return Hamiltonian(L=L, h=h, matrix=matrix, backend=backend, sparse=sparse), basis
