# src/atlas_provision/core/options/resolver.py
"""
Merge Resolver — resolução determinística de slots de configuração.

Este módulo transforma o conjunto de contribuições coletadas em uma
`ResolvedConfig`: exatamente um valor final por slot declarado.

Algoritmo (por slot):
    1. Descartar contribuições cuja condição avalia falso
    2. Manter apenas as de maior prioridade presente
    3. Tipos estruturais combinam todas as sobreviventes:
        - LIST  → concatenação na ordem de coleta
        - SET   → união (ordenada quando os elementos são ordenáveis)
        - LINES → junção com "\\n" na ordem de coleta
        - ATTRS → união de chaves; colisão divergente → DuplicateKeyError
    4. Tipos escalares: uma sobrevivente, ou todas iguais → esse valor;
       valores divergentes → ConflictError nomeando as duas fontes
    5. Nenhuma sobrevivente → default declarado (ou UNSET)
    6. `apply` do slot, quando declarado, transforma o valor final

Decisões arquiteturais:
    - Condições enxergam uma visão lazy da configuração: slots são
      resolvidos sob demanda e memoizados
    - Dependência circular entre slots via condições é erro explícito
    - A seleção por prioridade independe da ordem de coleta

Invariantes:
    - Todo slot declarado possui exatamente uma entrada na ResolvedConfig
    - A mesma entrada sempre produz a mesma saída
    - Nenhum input é mutado

Limites explícitos:
    - Não valida asserções
    - Não planeja nem executa Actions
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from atlas_provision.core.config.merge import merge_records

from .conditions import evaluate
from .errors import ConflictError, RecursiveResolutionError, UndefinedSlotError, UnknownSlotError
from .registry import OptionRegistry
from .types import UNSET, Contribution, OptionSlot, OptionType

DEFAULT_SOURCE = "<default>"


class ResolvedConfig(Mapping):
    """
    Configuração final resolvida (slot id → valor), imutável.

    Leitura de um slot declarado sem default e sem contribuição ativa
    levanta `UndefinedSlotError`; leitura de um slot desconhecido
    levanta `UnknownSlotError`. Ambas são `KeyError`, de modo que
    `get()` devolve o default informado nesses casos.
    """

    def __init__(self, values: Dict[str, Any], provenance: Dict[str, Tuple[str, ...]]):
        self._values = dict(values)
        self._provenance = dict(provenance)

    def __getitem__(self, slot_id: str) -> Any:
        if slot_id not in self._values:
            raise UnknownSlotError(slot_id)
        value = self._values[slot_id]
        if value is UNSET:
            raise UndefinedSlotError(slot_id)
        return value

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ResolvedConfig({len(self._values)} slots)"

    def is_defined(self, slot_id: str) -> bool:
        return self._values.get(slot_id, UNSET) is not UNSET

    def provenance(self, slot_id: str) -> List[str]:
        if slot_id not in self._provenance:
            raise UnknownSlotError(slot_id)
        return list(self._provenance[slot_id])

    def to_dict(self) -> Dict[str, Any]:
        """Árvore aninhada com todos os slots definidos (UNSET é omitido)."""
        tree: Dict[str, Any] = {}
        for slot_id, value in self._values.items():
            if value is UNSET:
                continue
            node = tree
            *parents, leaf = slot_id.split(".")
            for part in parents:
                node = node.setdefault(part, {})
            node[leaf] = value
        return tree

    def section(self, prefix: str) -> Dict[str, Any]:
        """Sub-árvore aninhada abaixo de `prefix` (ex.: `services.webmail`)."""
        node: Any = self.to_dict()
        for part in prefix.split("."):
            if not isinstance(node, dict) or part not in node:
                return {}
            node = node[part]
        return node if isinstance(node, dict) else {}


class _LazyView(Mapping):
    """Visão usada pelas condições durante a resolução."""

    def __init__(self, resolver: "MergeResolver"):
        self._resolver = resolver

    def __getitem__(self, slot_id: str) -> Any:
        value = self._resolver._resolve(slot_id)
        if value is UNSET:
            raise UndefinedSlotError(slot_id)
        return value

    def __iter__(self) -> Iterator[str]:
        return iter([s.id for s in self._resolver.registry.list()])

    def __len__(self) -> int:
        return len(self._resolver.registry)


def _sorted_or_seen(items: Iterable[Any]) -> List[Any]:
    seen: List[Any] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    try:
        return sorted(seen)
    except TypeError:
        return seen


def _unique_sources(contributions: List[Contribution]) -> Tuple[str, ...]:
    out: List[str] = []
    for c in contributions:
        if c.source not in out:
            out.append(c.source)
    return tuple(out)


class MergeResolver:
    """Resolve todos os slots de um registry a partir das contribuições."""

    def __init__(
        self,
        registry: OptionRegistry,
        contributions: Iterable[Contribution],
        flags: Optional[Mapping] = None,
    ):
        self.registry = registry
        self.flags: Mapping = dict(flags or {})
        self._by_slot: Dict[str, List[Contribution]] = {}
        for c in sorted(contributions, key=lambda c: c.seq):
            self._by_slot.setdefault(c.slot_id, []).append(c)

        self._values: Dict[str, Any] = {}
        self._provenance: Dict[str, Tuple[str, ...]] = {}
        self._stack: List[str] = []
        self._view = _LazyView(self)

    def resolve(self) -> ResolvedConfig:
        for slot_id in self._by_slot:
            self.registry.lookup(slot_id)
        for slot in self.registry.list():
            self._resolve(slot.id)
        return ResolvedConfig(
            {s.id: self._values[s.id] for s in self.registry.list()},
            self._provenance,
        )

    def _resolve(self, slot_id: str) -> Any:
        if slot_id in self._values:
            return self._values[slot_id]

        slot = self.registry.lookup(slot_id)
        if slot_id in self._stack:
            start = self._stack.index(slot_id)
            raise RecursiveResolutionError(self._stack[start:] + [slot_id])

        self._stack.append(slot_id)
        try:
            value, sources = self._merge(slot)
        finally:
            self._stack.pop()

        self._values[slot_id] = value
        self._provenance[slot_id] = sources
        return value

    def _merge(self, slot: OptionSlot) -> Tuple[Any, Tuple[str, ...]]:
        active = [
            c
            for c in self._by_slot.get(slot.id, [])
            if evaluate(c.condition, self._view, self.flags)
        ]

        if not active:
            if not slot.has_default:
                return UNSET, ()
            return self._apply(slot, deepcopy(slot.default)), (DEFAULT_SOURCE,)

        top = max(c.priority for c in active)
        winners = [c for c in active if c.priority == top]
        sources = _unique_sources(winners)

        if slot.type.is_structural:
            return self._apply(slot, self._combine(slot, winners)), sources

        first = winners[0]
        for other in winners[1:]:
            if other.value != first.value:
                raise ConflictError(
                    slot.id, [first.source, other.source], [first.value, other.value]
                )
        return self._apply(slot, first.value), sources

    def _combine(self, slot: OptionSlot, winners: List[Contribution]) -> Any:
        if slot.type is OptionType.LIST:
            out: List[Any] = []
            for c in winners:
                out.extend(deepcopy(list(c.value)))
            return out

        if slot.type is OptionType.SET:
            return _sorted_or_seen(item for c in winners for item in c.value)

        if slot.type is OptionType.LINES:
            return "\n".join(c.value for c in winners)

        return merge_records(slot.id, [(c.source, c.value) for c in winners])

    @staticmethod
    def _apply(slot: OptionSlot, value: Any) -> Any:
        if slot.apply is None or value is UNSET:
            return value
        return slot.apply(value)


def resolve(
    registry: OptionRegistry,
    contributions: Iterable[Contribution],
    flags: Optional[Mapping] = None,
) -> ResolvedConfig:
    """
    Resolve a configuração final a partir de registry e contribuições.

    Args:
        registry (OptionRegistry): Slots declarados.
        contributions (Iterable[Contribution]): Contribuições coletadas.
        flags (Optional[Mapping]): Flags externas visíveis às condições.

    Returns:
        ResolvedConfig: Configuração final imutável.

    Raises:
        ConflictError: Escalares divergentes na mesma prioridade.
        DuplicateKeyError: Colisão divergente de chave em record.
        RecursiveResolutionError: Slot dependente de si mesmo via condições.
        UnknownSlotError: Contribuição para slot não declarado.
    """
    return MergeResolver(registry, contributions, flags).resolve()
