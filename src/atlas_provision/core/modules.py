# src/atlas_provision/core/modules.py
"""
Contrato de Module do Atlas Provision.

Um Module é um ponto de declaração independente: declara os slots que
possui, contribui valores para slots (próprios ou de outros módulos),
afirma invariantes sobre a configuração resolvida e fornece templates
para o Activation Planner.

Princípios fundamentais:
    - Modules não conhecem uns aos outros; interagem apenas por slots
    - A ordem dos modules não altera a seleção por prioridade
    - Modules não executam efeitos durante a avaliação

Invariantes:
    - `id` é único entre os modules de um pass
    - `options` é chamado uma única vez, antes do `freeze()` do registry
    - `config` recebe um coletor com fonte carimbada igual a `id`

Limites explícitos:
    - Não define políticas de execução
    - Não registra eventos de rastreabilidade
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from atlas_provision.core.options.collector import ScopedCollector
from atlas_provision.core.options.registry import OptionRegistry
from atlas_provision.core.options.types import Condition
from atlas_provision.core.plan.types import ArtifactTemplate, BootstrapTemplate, ServiceTemplate
from atlas_provision.core.validation.assertions import Assertion, ConfigWarning


@dataclass(frozen=True)
class Module:
    """
    Declaração de um módulo de configuração.

    Atributos:
        - id: identificador estável (também a fonte das contribuições)
        - condition: combinada (AND) com toda contribuição do módulo e com
          a condição de cada template; falsa, asserções e warnings do
          módulo não são avaliados
        - options: `(OptionRegistry) -> None`, declara slots
        - config: `(ScopedCollector) -> None`, propõe contribuições
        - assertions / warnings: verificados após a resolução
        - artifacts / services / bootstraps: templates do plano
    """

    id: str
    options: Optional[Callable[[OptionRegistry], None]] = field(default=None, compare=False, repr=False)
    config: Optional[Callable[[ScopedCollector], None]] = field(default=None, compare=False, repr=False)
    condition: Optional[Condition] = field(default=None, compare=False, repr=False)
    assertions: Sequence[Assertion] = ()
    warnings: Sequence[ConfigWarning] = ()
    artifacts: Sequence[ArtifactTemplate] = ()
    services: Sequence[ServiceTemplate] = ()
    bootstraps: Sequence[BootstrapTemplate] = ()


def check_module_ids(modules: Sequence[Module]) -> List[Module]:
    """Valida ids não vazios e únicos; devolve a lista na ordem recebida."""
    seen = set()
    out: List[Module] = []
    for m in modules:
        if not isinstance(m.id, str) or not m.id.strip():
            raise ValueError("module id must be a non-empty string")
        if m.id in seen:
            raise ValueError(f"Duplicate module id: {m.id}")
        seen.add(m.id)
        out.append(m)
    return out
