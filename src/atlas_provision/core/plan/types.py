# src/atlas_provision/core/plan/types.py
"""
Tipos canônicos do plano de ativação do Atlas Provision.

Este módulo define as estruturas que padronizam a comunicação entre o
Activation Planner, o executor do plano e a camada de rastreabilidade.

Templates (fornecidos por renderizadores externos):
    - ArtifactTemplate  → `(ResolvedConfig) -> (path, content)`
    - ServiceTemplate   → serviço com ordenação, gating e restart triggers
    - BootstrapTemplate → ação única guardada por estado externo

Plano:
    - Artifact        → arquivo renderizado (path + bytes + digest)
    - Action          → nó do plano com predecessores declarados
    - ActivationPlan  → lista ordenada topologicamente de Actions

Resultado:
    - ActionStatus → estados finais (SUCCESS, UNCHANGED, SKIPPED, FAILED)
    - ActionResult → resultado imutável da execução de uma Action

Princípios fundamentais:
    - Tipos são estáveis e serializáveis (valores textuais canônicos)
    - Nenhuma lógica de planejamento ou execução vive neste módulo

Limites explícitos:
    - Não interpreta o conteúdo de Artifacts
    - Não executa Actions
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from atlas_provision.core.options.types import Condition


Content = Union[str, bytes]
RenderFn = Callable[[Mapping[str, Any]], Tuple[str, Content]]


class ActionKind(str, Enum):
    """Tipo de operação de uma Action."""
    WRITE_ARTIFACT = "write_artifact"
    START_SERVICE = "start_service"
    RESTART_SERVICE = "restart_service"
    STOP_SERVICE = "stop_service"
    BOOTSTRAP = "bootstrap"


class ActionStatus(str, Enum):
    """
    Estados finais possíveis da execução de uma Action.

    Estados definidos:
        - SUCCESS: operação executada com sucesso
        - UNCHANGED: nada a fazer (conteúdo idêntico, bootstrap já concluído)
        - SKIPPED: não tentada (predecessor falhou ou fail-fast interrompeu)
        - FAILED: operação interrompida por erro
    """
    SUCCESS = "success"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ArtifactTemplate:
    """Template opaco de arquivo: renderiza `(path, content)` a partir da config."""
    id: str
    render: RenderFn = field(compare=False, repr=False)
    condition: Optional[Condition] = field(default=None, compare=False, repr=False)
    mode: Optional[int] = None


@dataclass(frozen=True)
class ServiceTemplate:
    """
    Definição de serviço a ser mantido em execução.

    Campos:
        - after / before: ordenação fraca (ignorada se o alvo estiver ausente)
        - requires: dependência forte (alvo ausente é erro de planejamento)
        - restart_triggers: ids de ArtifactTemplates cuja mudança força restart
        - condition: gating; falso omite o serviço do plano
    """
    id: str
    after: Sequence[str] = ()
    before: Sequence[str] = ()
    requires: Sequence[str] = ()
    restart_triggers: Sequence[str] = ()
    condition: Optional[Condition] = field(default=None, compare=False, repr=False)
    description: str = ""


@dataclass(frozen=True)
class BootstrapTemplate:
    """
    Ação única (executada no máximo uma vez por alvo).

    `effect` recebe a configuração resolvida e o contexto do pass;
    `probe`, quando presente, inspeciona o estado real (ex.: versão do
    schema no banco) e devolve um CompletionStatus ou bool.
    """
    id: str
    effect: Callable[..., Any] = field(compare=False, repr=False)
    probe: Optional[Callable[[Mapping[str, Any]], Any]] = field(default=None, compare=False, repr=False)
    after: Sequence[str] = ()
    before: Sequence[str] = ()
    requires: Sequence[str] = ()
    condition: Optional[Condition] = field(default=None, compare=False, repr=False)
    description: str = ""


@dataclass(frozen=True)
class Artifact:
    """Arquivo renderizado: caminho alvo, conteúdo e digest sha256."""
    id: str
    path: str
    content: bytes = field(repr=False)
    digest: str
    mode: Optional[int] = None


@dataclass(frozen=True)
class Action:
    """
    Nó do plano de ativação.

    Invariantes:
        - `predecessors` contém apenas ids de Actions presentes no plano
        - `changed` só é relevante para WRITE_ARTIFACT
        - `triggers` mapeia artifact id → digest atual (restart triggers)
    """
    id: str
    kind: ActionKind
    predecessors: Tuple[str, ...] = ()
    triggers: Dict[str, str] = field(default_factory=dict)
    changed: bool = True
    artifact: Optional[Artifact] = None
    bootstrap: Optional[BootstrapTemplate] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "predecessors": list(self.predecessors),
        }
        if self.triggers:
            out["triggers"] = dict(self.triggers)
        if self.artifact is not None:
            out["path"] = self.artifact.path
            out["digest"] = self.artifact.digest
            out["changed"] = self.changed
        return out


@dataclass(frozen=True)
class ActivationPlan:
    """Plano ordenado topologicamente. Nunca executa nada por si só."""
    actions: List[Action] = field(default_factory=list)

    @property
    def ids(self) -> List[str]:
        return [a.id for a in self.actions]

    def get(self, action_id: str) -> Action:
        for a in self.actions:
            if a.id == action_id:
                return a
        raise KeyError(action_id)

    def artifacts(self) -> List[Artifact]:
        return [a.artifact for a in self.actions if a.artifact is not None]

    def to_dict(self) -> Dict[str, Any]:
        return {"actions": [a.to_dict() for a in self.actions]}


@dataclass(frozen=True)
class ActionResult:
    """
    Resultado imutável da execução de uma Action.

    Campos:
        - action_id / kind / status
        - summary: resumo textual
        - details: dados estruturados (ex.: outcome do bootstrap)
        - error: payload de erro serializável quando FAILED
    """
    action_id: str
    kind: ActionKind
    status: ActionStatus
    summary: str
    details: Dict[str, Any] = field(default_factory=dict)
    error: Optional[Dict[str, Any]] = None
