# tfim_sim/solver.py
import logging
import numpy as np
from scipy import linalg as la
from scipy.sparse.linalg import ArpackError, ArpackNoConvergence, eigsh
from .errors import InvalidParameter, SolverFailure
from .hamiltonian import Hamiltonian

log = logging.getLogger(__name__)

def _checked(evals, evecs):
    if not (np.all(np.isfinite(evals)) and np.all(np.isfinite(evecs))):
        raise SolverFailure("eigensolver returned non-finite values")
    return evals, evecs

def eigensolve(H: Hamiltonian):
    """Full spectrum: (eigenvalues ascending, eigenvectors as columns)."""
    H.check_symmetric()
    try:
        evals, evecs = la.eigh(H.toarray())
    except (la.LinAlgError, ValueError) as e:
        raise SolverFailure(f"eigh failed for L={H.L}, h={H.h}: {e}") from e
    return _checked(evals, evecs)

def ground_state(H: Hamiltonian, k: int = 1):
    """Lowest k eigenpairs. Sparse Hamiltonians go through ARPACK when it applies."""
    if not (1 <= k <= H.dim):
        raise InvalidParameter(f"k must be in [1, {H.dim}], got {k}")
    H.check_symmetric()
    if H.is_sparse and k < H.dim - 1:
        try:
            evals, evecs = eigsh(H.matrix, k=k, which="SA")
        except (ArpackNoConvergence, ArpackError) as e:
            raise SolverFailure(f"eigsh did not converge for L={H.L}, h={H.h}: {e}") from e
        order = np.argsort(evals)
        return _checked(evals[order], evecs[:, order])
    try:
        evals, evecs = la.eigh(H.toarray(), subset_by_index=[0, k - 1])
    except (la.LinAlgError, ValueError) as e:
        raise SolverFailure(f"eigh failed for L={H.L}, h={H.h}: {e}") from e
    log.debug("ground state L=%d h=%g E0=%.12g", H.L, H.h, evals[0])
    return _checked(evals, evecs)
