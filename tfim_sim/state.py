# tfim_sim/state.py
import numpy as np
from dataclasses import dataclass
from .basis import DEFAULT_MAX_BYTES, check_sites
from .errors import InvalidParameter, NumericInvariantViolation, ResourceExceeded

NORM_TOL = 1e-6

@dataclass
class State:
    L: int
    psi: np.ndarray  # shape (2**L,), real or complex amplitudes

    @staticmethod
    def basis_state(L: int, index: int = 0, dtype=np.complex128,
                    max_bytes: int = DEFAULT_MAX_BYTES) -> "State":
        """Computational basis state |index>; index 0 is all spins up."""
        L = check_sites(L)
        N = 1 << L
        need = N * np.dtype(dtype).itemsize
        if need > max_bytes:
            raise ResourceExceeded(f"state for L={L} needs ~{need} bytes, limit is {max_bytes}")
        if not (0 <= index < N):
            raise InvalidParameter(f"index {index} outside [0, {N})")
        psi = np.zeros(N, dtype=dtype)
        psi[index] = 1.0
        return State(L=L, psi=psi)

    @staticmethod
    def from_vector(L: int, psi, tol=NORM_TOL) -> "State":
        L = check_sites(L)
        psi = np.asarray(psi)
        if psi.shape != (1 << L,):
            raise InvalidParameter(f"state has shape {psi.shape}, expected ({1 << L},)")
        st = State(L=L, psi=psi)
        n2 = st.norm2()
        if not (abs(1.0 - n2) <= tol):
            raise InvalidParameter(f"state is not normalized: ||psi||^2={n2}")
        return st

    @property
    def dtype(self):
        return self.psi.dtype

    def norm2(self) -> float:
        return float(np.vdot(self.psi, self.psi).real)

    def check_normalized(self, tol=NORM_TOL):
        n2 = self.norm2()
        if not (abs(1.0 - n2) <= tol):
            raise NumericInvariantViolation(f"Normalization failed: ||psi||^2={n2}")

    def copy(self) -> "State":
        return State(self.L, self.psi.copy())

    def as_numpy(self) -> np.ndarray:
        return self.psi
