# src/atlas_provision/core/state/secrets.py
"""
Helpers de bootstrap para material secreto gerado uma única vez.

Um segredo (ex.: chave de criptografia de sessões) precisa ser gerado
exatamente uma vez: regenerá-lo torna ilegível tudo o que foi cifrado com
o valor anterior. Por isso o gancho `on_generated` existe para invalidar
sessões quando uma geração de fato acontece.
"""

from __future__ import annotations

import base64
import secrets
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

from .bootstrap import CompletionStatus
from .store import atomic_write


def path_exists_probe(path: Union[str, Path]) -> Callable[..., CompletionStatus]:
    """Probe: COMPLETE quando `path` já existe no alvo."""

    def _probe(*_args: Any) -> CompletionStatus:
        return CompletionStatus.COMPLETE if Path(path).exists() else CompletionStatus.ABSENT

    return _probe


def generate_secret(nbytes: int = 24) -> str:
    # base64 truncado em nbytes caracteres
    return base64.b64encode(secrets.token_bytes(nbytes)).decode("ascii")[:nbytes]


def secret_file_effect(
    path: Union[str, Path],
    *,
    nbytes: int = 24,
    on_generated: Optional[Callable[[str], None]] = None,
) -> Callable[..., None]:
    """
    Effect que grava um segredo aleatório em `path` (modo 0600, atômico).

    Se o arquivo já existir o effect não faz nada; nunca sobrescreve.
    """
    if nbytes <= 0:
        raise ValueError("nbytes must be positive")

    def _effect(config: Optional[Mapping[str, Any]] = None, ctx: Any = None) -> None:
        target = Path(path)
        if target.exists():
            return
        value = generate_secret(nbytes)
        atomic_write(target, value.encode("ascii"), mode=0o600)
        if on_generated is not None:
            on_generated(value)

    return _effect
