# tfim_sim/evolution.py
import logging
import multiprocessing as mp
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import List, Sequence, Union
import numpy as np
from scipy import linalg as la
from scipy.sparse.linalg import expm_multiply
from .errors import InvalidParameter, NumericInvariantViolation, SolverFailure, TfimError
from .hamiltonian import DEFAULT_MAX_BYTES, Hamiltonian, build_hamiltonian, check_real, estimate_bytes
from .state import State

log = logging.getLogger(__name__)

UNITARY_TOL = 1e-8
EVOLUTION_NORM_TOL = 1e-8

@dataclass(frozen=True)
class SampleFailure:
    """Stands in for the state of a time sample whose evolution raised."""
    index: int
    t: float
    error: BaseException

    def __str__(self):
        return f"t[{self.index}]={self.t}: {type(self.error).__name__}: {self.error}"

def _vector(state) -> np.ndarray:
    psi = state.as_numpy() if isinstance(state, State) else np.asarray(state)
    if psi.ndim != 1:
        raise InvalidParameter(f"state must be a vector, got shape {psi.shape}")
    return psi

def propagator(H: Hamiltonian, t: float, check_unitary: bool = True) -> np.ndarray:
    """U = exp(-i t H) as a dense matrix."""
    t = check_real("t", t)
    try:
        U = la.expm(-1j * t * H.toarray())
    except (la.LinAlgError, ValueError) as e:
        raise SolverFailure(f"expm failed for L={H.L}, h={H.h}, t={t}: {e}") from e
    if not np.all(np.isfinite(U)):
        raise SolverFailure(f"expm returned non-finite entries for t={t}")
    if check_unitary:
        err = float(np.max(np.abs(U.conj().T @ U - np.eye(U.shape[0]))))
        if err > UNITARY_TOL:
            raise NumericInvariantViolation(f"propagator not unitary: max|U^dag U - 1|={err}")
    return U

def propagate(state, H: Hamiltonian, t: float) -> np.ndarray:
    """exp(-i t H) |psi>. The input state is left untouched."""
    psi = _vector(state)
    t = check_real("t", t)
    if psi.shape[0] != H.dim:
        raise InvalidParameter(f"state has length {psi.shape[0]}, Hamiltonian has dim {H.dim}")
    psi = psi.astype(np.complex128)
    if H.is_sparse:
        try:
            out = expm_multiply(-1j * t * H.matrix, psi)
        except (la.LinAlgError, ValueError) as e:
            raise SolverFailure(f"expm_multiply failed for L={H.L}, h={H.h}, t={t}: {e}") from e
        if not np.all(np.isfinite(out)):
            raise SolverFailure(f"expm_multiply returned non-finite entries for t={t}")
    else:
        out = propagator(H, t, check_unitary=False) @ psi
    n_in = np.linalg.norm(psi)
    n_out = np.linalg.norm(out)
    if abs(n_out - n_in) > EVOLUTION_NORM_TOL * max(n_in, 1.0):
        raise NumericInvariantViolation(f"norm changed under evolution: {n_in} -> {n_out}")
    return out

def _evolve_sample(L: int, h: float, psi: np.ndarray, t: float, backend: str, sparse: bool,
                   max_bytes: int = DEFAULT_MAX_BYTES) -> np.ndarray:
    # process task: rebuilds H(t) from (L, h) so no matrix crosses the pool boundary
    H, _ = build_hamiltonian(L, h, backend=backend, sparse=sparse, max_bytes=max_bytes)
    return propagate(psi, H, t)

# errors that mark a single sample as failed rather than aborting the series
SAMPLE_ERRORS = (TfimError, ArithmeticError, ValueError)

def _pool(executor: str, workers: int):
    if executor == "thread":
        return ThreadPoolExecutor(max_workers=workers)
    if executor == "process":
        # fork after a numba parallel kernel has run deadlocks the workers
        return ProcessPoolExecutor(max_workers=workers, mp_context=mp.get_context("spawn"))
    raise NotImplementedError(f"Unknown executor: {executor}")

def time_series(state, H, times: Sequence[float], workers: int = None,
                executor: str = "thread") -> List[Union[np.ndarray, SampleFailure]]:
    """
    Evolve the same initial state independently to every t in `times`.

    H is a Hamiltonian (static) or a TimeDependentHamiltonian; each sample uses
    H(t) for the whole interval [0, t]. Results come back in the order of
    `times`; a sample that raised is a SampleFailure at its index.

    A static Hamiltonian is shared read-only by sequential and thread tasks;
    process tasks and time-dependent snapshots rebuild H(t) from (L, h(t)).
    With backend="numba" prefer executor="process": numba's default
    workqueue threading layer cannot run parallel kernels from several
    threads at once.
    """
    psi = _vector(state)
    times = list(times)
    parallel = workers is not None and workers > 1
    if parallel and executor not in ("thread", "process"):
        raise NotImplementedError(f"Unknown executor: {executor}")
    shared = isinstance(H, Hamiltonian) and not (parallel and executor == "process")
    max_bytes = DEFAULT_MAX_BYTES
    if isinstance(H, Hamiltonian):
        # H already fits, whatever limit it was built with
        max_bytes = max(max_bytes, estimate_bytes(H.L, H.sparse))

    results: List[Union[np.ndarray, SampleFailure]] = [None] * len(times)
    tasks = {}
    for i, t in enumerate(times):
        try:
            h = H.field_at(t)
        except SAMPLE_ERRORS as e:
            results[i] = SampleFailure(i, t, e)
            continue
        if shared:
            tasks[i] = (propagate, (psi, H, float(t)))
        else:
            tasks[i] = (_evolve_sample, (H.L, h, psi, float(t), H.backend, H.sparse, max_bytes))

    if not parallel:
        for i, (fn, args) in tasks.items():
            try:
                results[i] = fn(*args)
            except SAMPLE_ERRORS as e:
                results[i] = SampleFailure(i, times[i], e)
    else:
        with _pool(executor, workers) as pool:
            futures = {pool.submit(fn, *args): i for i, (fn, args) in tasks.items()}
            for future in as_completed(futures):
                i = futures[future]
                try:
                    results[i] = future.result()
                except SAMPLE_ERRORS as e:
                    results[i] = SampleFailure(i, times[i], e)

    for f in failures(results):
        log.warning("time sample failed: %s", f)
    return results

def failures(results) -> List[SampleFailure]:
    return [r for r in results if isinstance(r, SampleFailure)]
