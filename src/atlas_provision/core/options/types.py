# src/atlas_provision/core/options/types.py
"""
Tipos canônicos da camada de opções do Atlas Provision.

Este módulo define as estruturas fundamentais da configuração declarativa:

    - OptionType   → tipos de valor suportados por um slot
    - Priority     → prioridades ordenadas de contribuições
    - OptionSlot   → schema imutável de um slot declarado
    - Contribution → proposta de valor para um slot
    - UNSET        → marcador de slot sem default

Princípios fundamentais:
    - Slots são imutáveis após a declaração
    - A verificação de tipo é feita cedo (declaração e coleta)
    - Nenhuma lógica de merge vive neste módulo

Invariantes:
    - `Priority.FORCED > Priority.EXPLICIT > Priority.DEFAULT`
    - `bool` nunca é aceito como `INT`
    - O default declarado de um slot sempre respeita seu tipo

Limites explícitos:
    - Não resolve contribuições
    - Não avalia condições
    - Não conhece templates, Actions ou estado persistido
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable, Mapping, Optional

from .errors import TypeMismatchError


# (config, flags) -> bool
Condition = Callable[[Mapping[str, Any], Mapping[str, Any]], bool]


class _Unset:
    """Sentinela de slot declarado sem valor default."""

    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class OptionType(str, Enum):
    """
    Tipos de valor suportados por um OptionSlot.

    Tipos escalares (BOOL, STR, INT, REFERENCE) exigem uma única definição
    vencedora; tipos estruturais (LINES, LIST, SET, ATTRS) combinam todas
    as contribuições sobreviventes de mesma prioridade.
    """
    BOOL = "bool"
    STR = "str"
    INT = "int"
    LINES = "lines"
    LIST = "list"
    SET = "set"
    ATTRS = "attrs"
    REFERENCE = "reference"

    @property
    def is_structural(self) -> bool:
        return self in _STRUCTURAL


_STRUCTURAL = frozenset({OptionType.LINES, OptionType.LIST, OptionType.SET, OptionType.ATTRS})


class Priority(IntEnum):
    """
    Prioridade ordenada de uma contribuição.

    Valores maiores vencem. O default declarado no slot funciona como um
    quarto nível implícito, abaixo de `DEFAULT`.
    """
    DEFAULT = 1
    EXPLICIT = 2
    FORCED = 3


def _matches(option_type: OptionType, value: Any) -> bool:
    if option_type is OptionType.BOOL:
        return isinstance(value, bool)
    if option_type is OptionType.INT:
        return isinstance(value, int) and not isinstance(value, bool)
    if option_type in (OptionType.STR, OptionType.LINES):
        return isinstance(value, str)
    if option_type is OptionType.LIST:
        return isinstance(value, (list, tuple))
    if option_type is OptionType.SET:
        return isinstance(value, (list, tuple, set, frozenset))
    if option_type is OptionType.ATTRS:
        return isinstance(value, dict) and all(isinstance(k, str) for k in value)
    return True  # REFERENCE


def check_value(
    slot_id: str,
    option_type: OptionType,
    value: Any,
    *,
    element: Optional[OptionType] = None,
    source: Optional[str] = None,
) -> None:
    """
    Valida um valor contra o tipo declarado de um slot.

    Para LIST e SET com `element` declarado, cada elemento também é
    verificado; para ATTRS, cada valor do record.

    Raises:
        TypeMismatchError: Se o valor (ou algum elemento) não respeitar o tipo.
    """
    if not _matches(option_type, value):
        raise TypeMismatchError(slot_id, option_type.value, value, source)

    if element is None:
        return

    if option_type in (OptionType.LIST, OptionType.SET):
        items = list(value)
    elif option_type is OptionType.ATTRS:
        items = list(value.values())
    else:
        return

    for item in items:
        if not _matches(element, item):
            raise TypeMismatchError(
                slot_id, f"{option_type.value} of {element.value}", item, source
            )


@dataclass(frozen=True)
class OptionSlot:
    """
    Schema imutável de um slot de configuração.

    Campos:
        - id: caminho pontuado do slot (ex.: `database.host`)
        - type: tipo declarado do valor
        - default: valor default (ou `UNSET`)
        - description: documentação legível
        - element: tipo dos elementos (LIST, SET, ATTRS), opcional
        - apply: transformação pura aplicada ao valor final, opcional
        - example: exemplo para documentação, opcional

    Invariantes:
        - Uma instância nunca é alterada após a declaração
        - `default` é `UNSET` ou respeita `type`
    """
    id: str
    type: OptionType
    default: Any = UNSET
    description: str = ""
    element: Optional[OptionType] = None
    apply: Optional[Callable[[Any], Any]] = field(default=None, compare=False, repr=False)
    example: Any = None

    @property
    def has_default(self) -> bool:
        return self.default is not UNSET

    @property
    def path(self) -> tuple:
        return tuple(self.id.split("."))


@dataclass(frozen=True)
class Contribution:
    """
    Proposta de valor para um slot.

    Criada quando um ponto de declaração é avaliado e consumida uma única
    vez durante a resolução. `seq` registra a ordem de coleta, usada
    apenas para concatenação de listas e linhas.
    """
    slot_id: str
    value: Any
    priority: Priority = Priority.EXPLICIT
    condition: Optional[Condition] = field(default=None, compare=False, repr=False)
    source: str = "<unknown>"
    seq: int = 0
