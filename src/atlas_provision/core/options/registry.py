# src/atlas_provision/core/options/registry.py
"""
Registro canônico de slots de configuração.

Este módulo define o `OptionRegistry`, responsável por registrar os
schemas de opções (OptionSlot) declarados pelos módulos antes que
qualquer contribuição seja coletada ou resolvida.

O registry atua como uma camada de proteção antecipada, garantindo que:
    - cada slot possua um identificador válido (caminho pontuado)
    - não existam identificadores duplicados
    - nenhum slot seja prefixo de outro (a árvore aninhada é inequívoca)
    - defaults declarados respeitem o tipo do slot
    - a ordem de declaração seja preservada explicitamente

Decisões arquiteturais:
    - A declaração ocorre numa fase de inicialização encerrada por `freeze()`
    - Após o freeze o registry é imutável
    - Erros estruturais são tratados como falhas fatais

Invariantes:
    - Cada slot registrado possui um `id` único
    - `list()` reflete exatamente a ordem de declaração
    - Nenhum slot inválido é aceito

Limites explícitos:
    - Não coleta contribuições
    - Não resolve valores
    - Não interage com Engine, planner ou estado persistido
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

from .errors import DuplicateSlotError, RegistryFrozenError, UnknownSlotError
from .types import UNSET, OptionSlot, OptionType, check_value


def _validate_slot_id(slot_id: Any) -> str:
    if not isinstance(slot_id, str) or not slot_id.strip():
        raise ValueError("slot id must be a non-empty string")
    if any(not part.strip() for part in slot_id.split(".")):
        raise ValueError(f"slot id must be a dotted path of non-empty names: {slot_id!r}")
    return slot_id


@dataclass
class OptionRegistry:
    """
    Registro canônico de OptionSlots.

    Esta classe mantém os schemas declarados por todos os módulos de uma
    avaliação, validando unicidade e consistência de cada declaração.

    Decisões arquiteturais:
        - A ordem de declaração é mantida separadamente do armazenamento
        - A estrutura interna não é exposta diretamente
        - `freeze()` encerra a fase de inicialização

    Invariantes:
        - Cada `slot.id` é único no registry
        - Nenhum slot é prefixo de caminho de outro slot
        - Após `freeze()`, nenhuma declaração é aceita

    Limites explícitos:
        - Não coleta nem resolve contribuições
        - Não valida semântica de domínio dos valores
    """

    _slots: Dict[str, OptionSlot] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)
    _frozen: bool = field(default=False, init=False)

    def declare(
        self,
        slot_id: str,
        type: OptionType,
        default: Any = UNSET,
        description: str = "",
        *,
        element: Optional[OptionType] = None,
        apply: Optional[Callable[[Any], Any]] = None,
        example: Any = None,
    ) -> OptionSlot:
        slot_id = _validate_slot_id(slot_id)
        if self._frozen:
            raise RegistryFrozenError(slot_id)
        if slot_id in self._slots:
            raise DuplicateSlotError(slot_id)

        option_type = OptionType(type)
        for existing in self._order:
            if existing.startswith(slot_id + ".") or slot_id.startswith(existing + "."):
                raise ValueError(
                    f"slot '{slot_id}' overlaps with existing slot '{existing}'"
                )

        if default is not UNSET:
            check_value(slot_id, option_type, default, element=element, source="<default>")

        slot = OptionSlot(
            id=slot_id,
            type=option_type,
            default=default,
            description=description,
            element=element,
            apply=apply,
            example=example,
        )
        self._slots[slot_id] = slot
        self._order.append(slot_id)
        return slot

    def lookup(self, slot_id: str) -> OptionSlot:
        try:
            return self._slots[slot_id]
        except KeyError:
            raise UnknownSlotError(slot_id) from None

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def list(self) -> List[OptionSlot]:
        return [self._slots[sid] for sid in self._order]

    def __contains__(self, slot_id: object) -> bool:
        return slot_id in self._slots

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[OptionSlot]:
        return iter(self.list())
