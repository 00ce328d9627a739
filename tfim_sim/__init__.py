# tfim_sim/__init__.py
from .basis import Basis, configuration_of, flip, generate_basis, index_of
from .errors import (InvalidParameter, NumericInvariantViolation, ResourceExceeded,
                     SolverFailure, TfimError)
from .evolution import SampleFailure, failures, propagate, propagator, time_series
from .hamiltonian import Hamiltonian, TimeDependentHamiltonian, build_hamiltonian
from .observables import energy, magnetization, magnetization_z
from .solver import eigensolve, ground_state
from .state import State
