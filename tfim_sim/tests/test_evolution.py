# tfim_sim/tests/test_evolution.py
import math
import numpy as np
import pytest
from tfim_sim.errors import InvalidParameter, NumericInvariantViolation
from tfim_sim.evolution import SampleFailure, failures, propagate, propagator, time_series
from tfim_sim.hamiltonian import TimeDependentHamiltonian, build_hamiltonian
from tfim_sim.solver import eigensolve
from tfim_sim.state import State

def test_propagator_unitary():
    H, _ = build_hamiltonian(4, 0.9)
    for t in (0.0, 0.37, 5.0, -2.0):
        U = propagator(H, t)
        assert np.allclose(U.conj().T @ U, np.eye(16), atol=1e-10)

def test_norm_preserved():
    rng = np.random.default_rng(1)
    H, _ = build_hamiltonian(5, 1.2)
    psi = rng.normal(size=32) + 1j * rng.normal(size=32)
    psi /= np.linalg.norm(psi)
    for t in (0.1, 1.0, 10.0):
        out = propagate(psi, H, t)
        assert np.linalg.norm(out) == pytest.approx(1.0, abs=1e-10)

def test_matches_spectral_decomposition():
    H, _ = build_hamiltonian(3, 0.6)
    evals, evecs = eigensolve(H)
    psi = State.basis_state(3, 5)
    t = 1.3
    expect = evecs @ (np.exp(-1j * evals * t) * (evecs.T @ psi.psi))
    assert np.allclose(propagate(psi, H, t), expect, atol=1e-10)

def test_single_site_rabi():
    # H = -h X: |up> -> cos(ht)|up> + i sin(ht)|down>
    h, t = 0.5, 0.8
    H, _ = build_hamiltonian(1, h)
    out = propagate(State.basis_state(1, 0), H, t)
    assert np.allclose(out, [math.cos(h * t), 1j * math.sin(h * t)], atol=1e-12)

def test_eigenstate_only_picks_up_phase():
    H, _ = build_hamiltonian(4, 1.0)
    evals, evecs = eigensolve(H)
    out = propagate(evecs[:, 0], H, 2.5)
    assert np.allclose(out, np.exp(-2.5j * evals[0]) * evecs[:, 0], atol=1e-10)

def test_sparse_propagation_matches_dense():
    st = State.basis_state(6, 11)
    Hd, _ = build_hamiltonian(6, 0.7)
    Hs, _ = build_hamiltonian(6, 0.7, sparse=True)
    assert np.allclose(propagate(st, Hd, 1.1), propagate(st, Hs, 1.1), atol=1e-10)

def test_input_not_mutated():
    st = State.basis_state(3, 2)
    before = st.psi.copy()
    H, _ = build_hamiltonian(3, 1.0)
    propagate(st, H, 1.0)
    assert np.array_equal(st.psi, before)

def test_bad_time_and_length():
    H, _ = build_hamiltonian(2, 1.0)
    with pytest.raises(InvalidParameter):
        propagate(State.basis_state(2, 0), H, math.inf)
    with pytest.raises(InvalidParameter):
        propagate(np.ones(8) / math.sqrt(8), H, 1.0)

def test_norm_drift_detected():
    # a non-Hermitian matrix does not conserve the norm
    H, _ = build_hamiltonian(1, 1.0)
    object.__setattr__(H, "matrix", np.array([[0.0, 0.0], [0.0, -1j]]))
    with pytest.raises(NumericInvariantViolation):
        propagate(State.basis_state(1, 1), H, 1.0)

def test_time_series_samples_independent():
    L = 3
    st = State.basis_state(L, 0)
    Ht = TimeDependentHamiltonian(L, lambda t: 1.0 + t)
    times = [0.4, 1.0]
    out = time_series(st, Ht, times)
    for t, psi in zip(times, out):
        H, _ = build_hamiltonian(L, 1.0 + t)
        assert np.allclose(psi, propagate(st, H, t), atol=1e-12)

def test_time_series_order_and_zero_time():
    st = State.basis_state(3, 4)
    H, _ = build_hamiltonian(3, 0.5)
    out = time_series(st, H, [2.0, 0.0, 1.0], workers=3)
    assert np.allclose(out[1], st.psi)
    assert np.allclose(out[0], propagate(st, H, 2.0))
    assert np.allclose(out[2], propagate(st, H, 1.0))

def bad_after_one(t):
    return math.nan if t > 1.0 else 0.5

def test_failed_sample_does_not_abort_siblings():
    st = State.basis_state(2, 0)
    Ht = TimeDependentHamiltonian(2, bad_after_one)
    times = [0.5, 1.5, 1.0, float("nan")]
    for workers in (None, 3):
        out = time_series(st, Ht, times, workers=workers)
        bad = failures(out)
        assert [f.index for f in bad] == [1, 3]
        assert all(isinstance(f.error, InvalidParameter) for f in bad)
        assert isinstance(out[0], np.ndarray) and isinstance(out[2], np.ndarray)
        assert isinstance(out[1], SampleFailure) and out[1].t == 1.5

def sqrt_field(t):
    return math.sqrt(1.0 - t)

def test_field_raising_mid_series_is_isolated():
    st = State.basis_state(2, 0)
    Ht = TimeDependentHamiltonian(2, sqrt_field)
    times = [0.5, 2.0, 0.7]
    for workers in (None, 2):
        out = time_series(st, Ht, times, workers=workers)
        assert [f.index for f in failures(out)] == [1]
        assert isinstance(out[1].error, InvalidParameter)
        assert isinstance(out[1].error.__cause__, ValueError)
        assert np.allclose(out[2], propagate(st, build_hamiltonian(2, math.sqrt(0.3))[0], 0.7))

def test_static_hamiltonian_is_reused(monkeypatch):
    import tfim_sim.evolution as evolution
    H, _ = build_hamiltonian(3, 0.9, max_bytes=10**6)

    def no_rebuild(*args, **kwargs):
        raise AssertionError("static Hamiltonian was rebuilt")

    monkeypatch.setattr(evolution, "build_hamiltonian", no_rebuild)
    st = State.basis_state(3, 1)
    for workers in (None, 3):
        out = time_series(st, H, [0.0, 0.4, 1.2], workers=workers)
        assert not failures(out)
        assert np.allclose(out[0], st.psi)
        assert np.allclose(out[2], propagate(st, H, 1.2))

def test_unknown_executor():
    H, _ = build_hamiltonian(2, 1.0)
    with pytest.raises(NotImplementedError):
        time_series(State.basis_state(2, 0), H, [0.1], workers=2, executor="mpi")

def test_propagation_tolerance_is_tighter_than_input_tolerance():
    from tfim_sim import evolution, state
    assert evolution.EVOLUTION_NORM_TOL < state.NORM_TOL
    assert not hasattr(evolution, "NORM_TOL")
    # a slightly off input norm is carried through unchanged
    H, _ = build_hamiltonian(2, 0.6)
    psi = np.array([1.0 + 1e-7, 0.0, 0.0, 0.0])
    out = propagate(psi, H, 0.9)
    assert np.linalg.norm(out) == pytest.approx(np.linalg.norm(psi), abs=1e-12)
