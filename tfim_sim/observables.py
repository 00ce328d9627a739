# tfim_sim/observables.py
import numpy as np
from .basis import Basis
from .errors import InvalidParameter, NumericInvariantViolation
from .state import NORM_TOL, State

def _probabilities(state, basis: Basis, tol=NORM_TOL) -> np.ndarray:
    psi = state.as_numpy() if isinstance(state, State) else np.asarray(state)
    if psi.ndim != 1 or psi.shape[0] != len(basis):
        raise InvalidParameter(f"state has shape {psi.shape}, basis has {len(basis)} entries")
    p = np.abs(psi) ** 2
    n2 = float(p.sum())
    if not (abs(1.0 - n2) <= tol):
        raise InvalidParameter(f"state is not normalized: ||psi||^2={n2}")
    return p

def magnetization(state, basis: Basis, tol=NORM_TOL) -> float:
    """
    Sum over basis states of |m_i|, where m_i = |psi_i|^2 * (n_up - n_down) / L.

    This is <|sum_s Z_s|> / L, not the signed expectation value; see
    magnetization_z for that.
    """
    p = _probabilities(state, basis, tol)
    m = p * basis.spin_sums() / basis.L
    # only reachable when `tol` admits states with total weight above 1
    worst = float(np.max(np.abs(m)))
    if worst > 1.0 + NORM_TOL:
        raise NumericInvariantViolation(f"|m_i| = {worst} > 1")
    return float(np.sum(np.abs(m)))

def magnetization_z(state, basis: Basis) -> float:
    """Signed <sum_s Z_s> / L."""
    p = _probabilities(state, basis)
    return float(p @ basis.spin_sums()) / basis.L

def energy(state, H) -> float:
    """<psi|H|psi> for a normalized state."""
    psi = state.as_numpy() if isinstance(state, State) else np.asarray(state)
    if psi.shape != (H.dim,):
        raise InvalidParameter(f"state has shape {psi.shape}, Hamiltonian has dim {H.dim}")
    return float(np.vdot(psi, H.matrix @ psi).real)
