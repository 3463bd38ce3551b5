# src/atlas_provision/core/state/__init__.py
"""
Estado persistido de provisionamento.

API pública:
    - StateStore, MaterializedState → layout persistido (markers, digests)
    - BootstrapExecutor             → run_once idempotente
    - CompletionStatus, BootstrapOutcome
    - path_exists_probe, secret_file_effect → helpers de bootstrap
    - pass_lock, ConcurrentPassError        → um pass por state_dir
"""

from .bootstrap import BootstrapExecutor, BootstrapOutcome, CompletionStatus
from .lock import ConcurrentPassError, pass_lock
from .secrets import generate_secret, path_exists_probe, secret_file_effect
from .store import MaterializedState, StateStore, atomic_write

__all__ = [
    "BootstrapExecutor",
    "BootstrapOutcome",
    "CompletionStatus",
    "ConcurrentPassError",
    "MaterializedState",
    "StateStore",
    "atomic_write",
    "generate_secret",
    "pass_lock",
    "path_exists_probe",
    "secret_file_effect",
]
