# src/atlas_provision/core/options/__init__.py
"""
Camada de opções do Atlas Provision.

Este pacote reúne a declaração de slots, a coleta de contribuições e a
resolução determinística da configuração final.

Componentes:
    - types      → OptionType, Priority, OptionSlot, Contribution, UNSET
    - registry   → OptionRegistry (declare / lookup / freeze)
    - conditions → condições de ativação (flag, option, all_of, ...)
    - collector  → ContributionCollector (propose / scoped)
    - resolver   → MergeResolver, ResolvedConfig, resolve
    - errors     → hierarquia OptionError

Fluxo:
    Registry → Collector → Resolver → ResolvedConfig
"""

from .collector import ContributionCollector, ScopedCollector
from .errors import (
    ConflictError,
    DuplicateKeyError,
    DuplicateSlotError,
    OptionError,
    RecursiveResolutionError,
    RegistryFrozenError,
    TypeMismatchError,
    UndefinedSlotError,
    UnknownSlotError,
)
from .registry import OptionRegistry
from .resolver import MergeResolver, ResolvedConfig, resolve
from .types import UNSET, Contribution, OptionSlot, OptionType, Priority

__all__ = [
    "UNSET",
    "Contribution",
    "ContributionCollector",
    "ScopedCollector",
    "ConflictError",
    "DuplicateKeyError",
    "DuplicateSlotError",
    "MergeResolver",
    "OptionError",
    "OptionRegistry",
    "OptionSlot",
    "OptionType",
    "Priority",
    "RecursiveResolutionError",
    "RegistryFrozenError",
    "ResolvedConfig",
    "TypeMismatchError",
    "UndefinedSlotError",
    "UnknownSlotError",
    "resolve",
]
