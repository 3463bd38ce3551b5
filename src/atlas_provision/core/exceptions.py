"""
Atlas Provision — Canonical Exceptions (v1)

Exceções tipadas levantadas a partir de resultados de execução.

Regras:
- Carregam apenas dados estruturados (serializáveis) em `details`.
- Mensagem curta e humana; nunca embutem stack trace.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(eq=False)
class ProvisionException(Exception):
    """Base class para exceções de execução do Atlas Provision."""

    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover
        return self.message


@dataclass(eq=False)
class ActionFailedError(ProvisionException):
    """Primeira Action que falhou em um pass (id + causa em `details`)."""

    @property
    def action_id(self) -> Optional[str]:
        return self.details.get("action_id")
