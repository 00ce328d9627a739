# tfim_sim/tests/test_basis.py
import numpy as np
import pytest
from tfim_sim.basis import MAX_SITES, configuration_of, flip, generate_basis, index_of
from tfim_sim.errors import InvalidParameter, ResourceExceeded
from tfim_sim.state import State

def test_round_trip_all_small_chains():
    for L in range(1, 13):
        b = generate_basis(L)
        for i in range(1 << L):
            assert index_of(configuration_of(i, L)) == i
            assert index_of(b[i]) == i

def test_configuration_round_trip():
    L = 5
    for bits in [(0,0,0,0,0), (1,0,1,1,0), (1,1,1,1,1)]:
        c = np.array(bits, dtype=bool)
        assert np.array_equal(configuration_of(index_of(c), L), c)

def test_site_one_is_lowest_bit():
    # index 6 = 0b110 -> site1 up, site2 down, site3 down
    assert configuration_of(6, 3).tolist() == [False, True, True]
    assert index_of([True, False, False, False]) == 1

def test_basis_complete_and_unique():
    for L in (1, 3, 8):
        b = generate_basis(L)
        assert len(b) == 1 << L
        assert b.configs.shape == (1 << L, L)
        assert len({tuple(c) for c in b}) == 1 << L

def test_basis_is_read_only():
    b = generate_basis(3)
    with pytest.raises(ValueError):
        b.configs[0, 0] = True

def test_flip_matches_bit_pattern():
    L = 4
    for i in range(1 << L):
        for site in range(1, L + 1):
            c = configuration_of(i, L).copy()
            c[site - 1] = not c[site - 1]
            assert flip(i, site) == index_of(c)
            assert flip(flip(i, site), site) == i

def test_spin_sums():
    b = generate_basis(3)
    # all up, one down (x3), two down (x3), all down
    assert b.spin_sums().tolist() == [3, 1, 1, -1, 1, -1, -1, -3]

@pytest.mark.parametrize("L", [0, -1, MAX_SITES + 1, 2.0, True, "4"])
def test_bad_lengths_rejected(L):
    with pytest.raises(InvalidParameter):
        generate_basis(L)

def test_index_out_of_range():
    with pytest.raises(InvalidParameter):
        configuration_of(8, 3)
    b = generate_basis(2)
    with pytest.raises(InvalidParameter):
        b.index_of([True, False, True])

def test_basis_size_guard_before_allocation():
    with pytest.raises(ResourceExceeded):
        generate_basis(40)
    with pytest.raises(ResourceExceeded):
        generate_basis(10, max_bytes=1000)
    with pytest.raises(ResourceExceeded):
        State.basis_state(40)
