# tfim_sim/sweep.py
import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Sequence
import numpy as np
from .basis import generate_basis
from .errors import InvalidParameter, TfimError
from .evolution import SAMPLE_ERRORS, SampleFailure, time_series
from .hamiltonian import TimeDependentHamiltonian, build_hamiltonian
from .observables import energy, magnetization, magnetization_z
from .solver import ground_state
from .state import State

log = logging.getLogger(__name__)

NAN = float("nan")

@dataclass(frozen=True)
class Ramp:
    """Linear field h(t) = h0 + rate * t (a class so process pools can pickle it)."""
    h0: float
    rate: float = 0.0

    def __call__(self, t: float) -> float:
        return self.h0 + self.rate * t

def parse_list(text: str, cast: Callable = float) -> list:
    try:
        return [cast(x) for x in text.split(",") if x.strip()]
    except ValueError as e:
        raise InvalidParameter(f"cannot parse list {text!r}: {e}") from e

def _error_text(e: BaseException) -> str:
    return f"{type(e).__name__}: {e}"

def ground_state_sweep(sizes: Sequence[int], fields: Sequence[float],
                       backend: str = "serial", sparse: bool = False) -> List[dict]:
    """One row per (L, h): ground energy, gap, magnetization; failures become error rows."""
    rows = []
    for L in sizes:
        for h in fields:
            row = {"L": L, "h": h, "energy": NAN, "gap": NAN,
                   "magnetization": NAN, "magnetization_z": NAN, "error": ""}
            try:
                H, basis = build_hamiltonian(L, h, backend=backend, sparse=sparse)
                k = 2 if H.dim > 1 else 1
                evals, evecs = ground_state(H, k=k)
                psi0 = evecs[:, 0]
                row["energy"] = float(evals[0])
                row["gap"] = float(evals[1] - evals[0]) if k == 2 else NAN
                row["magnetization"] = magnetization(psi0, basis)
                row["magnetization_z"] = magnetization_z(psi0, basis)
            except SAMPLE_ERRORS as e:
                log.warning("ground state failed for L=%s h=%s: %s", L, h, e)
                row["error"] = _error_text(e)
            rows.append(row)
    return rows

def initial_state(L: int, kind: str, field=None, backend: str = "serial", sparse: bool = False) -> State:
    """'up' = all spins up, 'neel' = alternating, 'ground' = ground state of H(0)."""
    if kind == "up":
        return State.basis_state(L, 0)
    if kind == "neel":
        # sites 2, 4, ... down -> bits 1, 3, ...
        index = sum(1 << k for k in range(1, L, 2))
        return State.basis_state(L, index)
    if kind == "ground":
        if field is None:
            raise InvalidParameter("initial='ground' needs a field")
        h0 = TimeDependentHamiltonian(L, field).field_at(0.0) if callable(field) else field
        H, _ = build_hamiltonian(L, h0, backend=backend, sparse=sparse)
        _, evecs = ground_state(H, k=1)
        return State.from_vector(L, evecs[:, 0].astype(np.complex128))
    raise InvalidParameter(f"Unknown initial state: {kind}")

def evolution_sweep(L: int, field, times: Sequence[float], initial: str = "up",
                    workers: int = None, executor: str = "thread",
                    backend: str = "serial", sparse: bool = False) -> List[dict]:
    """Magnetization, energy and norm of exp(-i t H(t)) |psi0> for every t, in time order."""
    psi0 = initial_state(L, initial, field, backend=backend, sparse=sparse)
    f = field if callable(field) else Ramp(float(field))
    Ht = TimeDependentHamiltonian(L, f, backend=backend, sparse=sparse)
    basis = generate_basis(L)
    states = time_series(psi0, Ht, times, workers=workers, executor=executor)

    rows = []
    for i, (t, psi) in enumerate(zip(times, states)):
        row = {"t": t, "h": NAN, "magnetization": NAN, "magnetization_z": NAN,
               "energy": NAN, "norm": NAN, "error": ""}
        if isinstance(psi, SampleFailure):
            row["error"] = _error_text(psi.error)
            rows.append(row)
            continue
        try:
            h = Ht.field_at(t)
            row["h"] = h
            row["magnetization"] = magnetization(psi, basis)
            row["magnetization_z"] = magnetization_z(psi, basis)
            row["energy"] = energy(psi, Ht.at(t))
            row["norm"] = math.sqrt(float(np.vdot(psi, psi).real))
        except TfimError as e:
            log.warning("observables failed at t[%d]=%s: %s", i, t, e)
            row["error"] = _error_text(e)
        rows.append(row)
    return rows
