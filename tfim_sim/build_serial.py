# tfim_sim/build_serial.py
import numpy as np

def bond_energy(i: int, L: int) -> float:
    """Ising energy of configuration i on the open chain: -1 per aligned bond, +1 per anti-aligned."""
    e = 0.0
    for k in range(L - 1):
        if ((i >> k) & 1) == ((i >> (k + 1)) & 1):
            e -= 1.0
        else:
            e += 1.0
    return e

def fill_dense(H: np.ndarray, L: int, h: float):
    """Fill a zeroed (2**L, 2**L) array with the TFIM Hamiltonian (row by row)."""
    N = H.shape[0]
    assert H.shape == (N, N) and N == 1 << L
    for i in range(N):
        H[i, i] = bond_energy(i, L)
        # flipping site k+1 is an XOR; row j=i^m gets H[j,i] on its own pass
        for k in range(L):
            H[i, i ^ (1 << k)] = -h

def diagonal(L: int) -> np.ndarray:
    return np.array([bond_energy(i, L) for i in range(1 << L)], dtype=np.float64)
