# src/atlas_provision/core/state/lock.py
"""
Lock de pass: no máximo um provisionamento por `state_dir` ao mesmo tempo.

O BootstrapState é check-then-act; dois passes concorrentes contra o
mesmo alvo poderiam executar o mesmo bootstrap duas vezes. O lock usa
`fcntl.flock` não bloqueante sobre `<state_dir>/.lock`.
"""

from __future__ import annotations

import fcntl
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union


class ConcurrentPassError(RuntimeError):
    """Outro pass de provisionamento detém o lock deste state_dir."""


@contextmanager
def pass_lock(state_dir: Union[str, Path]) -> Iterator[Path]:
    lock_path = Path(state_dir) / ".lock"
    lock_path.parent.mkdir(parents=True, exist_ok=True)

    fh = open(lock_path, "a+")
    try:
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as exc:
            raise ConcurrentPassError(
                f"Another provisioning pass holds {lock_path}"
            ) from exc
        try:
            yield lock_path
        finally:
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
    finally:
        fh.close()
