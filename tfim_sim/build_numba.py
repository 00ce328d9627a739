# tfim_sim/build_numba.py
import numpy as np
from numba import njit, prange, set_num_threads, get_num_threads

# ---------- low-level kernels (Numba JIT) ----------

@njit(parallel=True, fastmath=True)
def _dense_kernel(H, L, h):
    N = H.shape[0]
    # each row writes only itself -> no races between prange iterations
    for i in prange(N):
        e = 0.0
        for k in range(L - 1):
            if ((i >> k) & 1) == ((i >> (k + 1)) & 1):
                e -= 1.0
            else:
                e += 1.0
        H[i, i] = e
        for k in range(L):
            H[i, i ^ (1 << k)] = -h

@njit(parallel=True, fastmath=True)
def _diagonal_kernel(out, L):
    N = out.shape[0]
    for i in prange(N):
        e = 0.0
        for k in range(L - 1):
            if ((i >> k) & 1) == ((i >> (k + 1)) & 1):
                e -= 1.0
            else:
                e += 1.0
        out[i] = e

# ---------- user-facing helpers ----------

def set_threads(n: int):
    set_num_threads(n)

def get_threads() -> int:
    return get_num_threads()

def fill_dense(H: np.ndarray, L: int, h: float):
    _dense_kernel(H, L, float(h))

def diagonal(L: int) -> np.ndarray:
    out = np.empty(1 << L, dtype=np.float64)
    _diagonal_kernel(out, L)
    return out
