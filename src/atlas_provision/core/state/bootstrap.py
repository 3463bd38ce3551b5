# src/atlas_provision/core/state/bootstrap.py
"""
Idempotent Bootstrap Executor.

Executa ações únicas de provisionamento (geração de segredo,
inicialização de schema) guardadas por estado observável externamente,
de modo que passes repetidos sejam no-ops após a conclusão.

Algoritmo de `run_once(action_id, precondition, effect)`:
    1. Marcador presente no StateStore → ALREADY_COMPLETE (no-op)
    2. `precondition()` indica conclusão por mecanismo externo
       (ex.: o schema já contém versão) → marca sem executar → ADOPTED
    3. Caso contrário executa `effect()` e só então marca → EXECUTED

Decisões arquiteturais:
    - A detecção de "já inicializado" inspeciona o estado real via probe,
      não uma flag local: o alvo pode ter sido inicializado por outro
      processo ou por uma encarnação anterior
    - Falha de `effect` propaga a exceção e deixa o marcador ausente,
      para que o próximo pass tente novamente
    - O marcador é escrito atomicamente; conclusão nunca é parcial

Limites explícitos:
    - Não implementa locking entre processos (ver `lock.pass_lock`)
    - Não define timeouts; são responsabilidade do effect
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Optional

from .store import StateStore


class CompletionStatus(str, Enum):
    """Resposta de um probe de BootstrapState."""
    COMPLETE = "complete"
    ABSENT = "absent"


class BootstrapOutcome(str, Enum):
    ALREADY_COMPLETE = "already_complete"
    ADOPTED = "adopted"
    EXECUTED = "executed"


def _is_complete(status: Any) -> bool:
    if isinstance(status, CompletionStatus):
        return status is CompletionStatus.COMPLETE
    if isinstance(status, str):
        return CompletionStatus(status) is CompletionStatus.COMPLETE
    return bool(status)


class BootstrapExecutor:
    """Executor de ações únicas sobre um StateStore."""

    def __init__(self, store: StateStore):
        self.store = store

    def run_once(
        self,
        action_id: str,
        precondition: Optional[Callable[[], Any]],
        effect: Callable[[], Any],
    ) -> BootstrapOutcome:
        """
        Executa `effect` no máximo uma vez para `action_id`.

        Args:
            action_id (str): Identificador estável da ação.
            precondition (Optional[Callable]): Probe do estado real; devolve
                CompletionStatus (ou bool). `None` equivale a ABSENT.
            effect (Callable): Efeito a executar quando não concluído.

        Returns:
            BootstrapOutcome: O que aconteceu neste pass.

        Raises:
            Exception: Qualquer falha de `precondition` ou `effect` é
                propagada sem marcar conclusão.
        """
        if self.store.is_complete(action_id):
            return BootstrapOutcome.ALREADY_COMPLETE

        if precondition is not None and _is_complete(precondition()):
            self.store.mark_complete(action_id, via="probe")
            return BootstrapOutcome.ADOPTED

        effect()
        self.store.mark_complete(action_id, via="effect")
        return BootstrapOutcome.EXECUTED
