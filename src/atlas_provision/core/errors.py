"""
Atlas Provision — Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros de execução do Atlas Provision.
Falhas de Actions são artefatos de domínio e fazem parte do contrato
operacional do sistema, devendo ser:

- explícitas
- serializáveis (registradas no Manifest)
- rastreáveis (sempre nomeiam a Action)
- acionáveis (hint indica onde corrigir)

Nenhuma falha é engolida: o payload acompanha o ActionResult FAILED.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProvisionErrorPayload:
    """
    Payload canônico de erro do Atlas Provision.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

ARTIFACT_WRITE_ERROR = "ARTIFACT_WRITE_ERROR"
SERVICE_OPERATION_ERROR = "SERVICE_OPERATION_ERROR"
BOOTSTRAP_EFFECT_ERROR = "BOOTSTRAP_EFFECT_ERROR"
ENGINE_EXECUTION_ERROR = "ENGINE_EXECUTION_ERROR"


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def artifact_write_error(
    *,
    action_id: str,
    path: str,
    exc: BaseException,
    hint: str = "Verifique permissões e espaço no diretório alvo; o arquivo anterior permanece intacto.",
) -> ProvisionErrorPayload:
    return ProvisionErrorPayload(
        type=ARTIFACT_WRITE_ERROR,
        message=f"Falha ao materializar artifact '{action_id}'",
        details={
            "action_id": action_id,
            "path": path,
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        },
        hint=hint,
    )


def service_operation_error(
    *,
    action_id: str,
    operation: str,
    exc: BaseException,
    hint: str = "Inspecione o log do serviço; Actions dependentes não foram tentadas.",
) -> ProvisionErrorPayload:
    return ProvisionErrorPayload(
        type=SERVICE_OPERATION_ERROR,
        message=f"Falha ao executar {operation} do serviço '{action_id}'",
        details={
            "action_id": action_id,
            "operation": operation,
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        },
        hint=hint,
    )


def bootstrap_effect_error(
    *,
    action_id: str,
    exc: BaseException,
    hint: str = "O marcador de conclusão não foi gravado; o próximo pass tentará novamente.",
) -> ProvisionErrorPayload:
    return ProvisionErrorPayload(
        type=BOOTSTRAP_EFFECT_ERROR,
        message=f"Bootstrap '{action_id}' falhou",
        details={
            "action_id": action_id,
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        },
        hint=hint,
    )


def engine_execution_error(
    *,
    action_id: Optional[str] = None,
    exc: Optional[BaseException] = None,
    hint: str = "Verifique o stacktrace e o manifest do pass. Nenhum fallback é aplicado automaticamente.",
) -> ProvisionErrorPayload:
    return ProvisionErrorPayload(
        type=ENGINE_EXECUTION_ERROR,
        message="Falha inesperada durante a execução do plano",
        details={
            "action_id": action_id,
            "exc_type": type(exc).__name__ if exc is not None else None,
            "exc_message": str(exc) if exc is not None else None,
        },
        hint=hint,
    )
