# src/atlas_provision/core/options/collector.py
"""
Coletor canônico de contribuições.

Este módulo define o `ContributionCollector`, responsável por reunir
propostas de valor (Contribution) emitidas por pontos de declaração
independentes, validando slot e tipo no momento da coleta.

Decisões arquiteturais:
    - Falha cedo: slot desconhecido ou tipo incompatível falham na coleta
    - O coletor não resolve conflitos; apenas registra
    - Múltiplas contribuições para o mesmo slot são esperadas

Invariantes:
    - Contribuições são mantidas na ordem de coleta (`seq` crescente)
    - Toda contribuição coletada referencia um slot declarado
    - Toda contribuição coletada respeita o tipo do slot

Limites explícitos:
    - A ordem de coleta não tem significado para a seleção por prioridade
    - Não avalia condições
    - Não declara slots
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .conditions import all_of
from .registry import OptionRegistry
from .types import Condition, Contribution, Priority, check_value


@dataclass
class ContributionCollector:
    """Coletor de contribuições vinculado a um OptionRegistry."""

    registry: OptionRegistry
    _items: List[Contribution] = field(default_factory=list, init=False, repr=False)

    def propose(
        self,
        slot_id: str,
        value: Any,
        priority: Priority = Priority.EXPLICIT,
        condition: Optional[Condition] = None,
        source: str = "<unknown>",
    ) -> Contribution:
        slot = self.registry.lookup(slot_id)
        check_value(slot_id, slot.type, value, element=slot.element, source=source)

        contribution = Contribution(
            slot_id=slot_id,
            value=value,
            priority=Priority(priority),
            condition=condition,
            source=source,
            seq=len(self._items),
        )
        self._items.append(contribution)
        return contribution

    def scoped(self, *, source: str, condition: Optional[Condition] = None) -> "ScopedCollector":
        return ScopedCollector(parent=self, source=source, condition=condition)

    def contributions(self) -> List[Contribution]:
        return list(self._items)

    def by_slot(self) -> Dict[str, List[Contribution]]:
        out: Dict[str, List[Contribution]] = {}
        for c in self._items:
            out.setdefault(c.slot_id, []).append(c)
        return out

    def __len__(self) -> int:
        return len(self._items)


@dataclass
class ScopedCollector:
    """
    Visão do coletor que carimba uma fonte e uma condição comum.

    Equivale a envolver todas as definições de um módulo em
    "aplica-se apenas se o módulo estiver habilitado": a condição do
    escopo é combinada (AND) com a condição de cada proposta.
    """

    parent: ContributionCollector
    source: str
    condition: Optional[Condition] = None

    def propose(
        self,
        slot_id: str,
        value: Any,
        priority: Priority = Priority.EXPLICIT,
        condition: Optional[Condition] = None,
    ) -> Contribution:
        if self.condition is not None and condition is not None:
            combined: Optional[Condition] = all_of(self.condition, condition)
        else:
            combined = condition if condition is not None else self.condition
        return self.parent.propose(
            slot_id, value, priority=priority, condition=combined, source=self.source
        )

    def default(self, slot_id: str, value: Any, condition: Optional[Condition] = None) -> Contribution:
        return self.propose(slot_id, value, Priority.DEFAULT, condition)

    def force(self, slot_id: str, value: Any, condition: Optional[Condition] = None) -> Contribution:
        return self.propose(slot_id, value, Priority.FORCED, condition)
