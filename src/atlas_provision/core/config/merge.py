# src/atlas_provision/core/config/merge.py
"""
Utilitários canônicos de merge de estruturas de configuração.

Este módulo implementa as duas políticas de merge de dicionários usadas
pelo Atlas Provision:

1. `deep_merge` — settings do engine (defaults + override local):
    - dict → merge recursivo por chave
    - list → sobrescrita total
    - escalar → sobrescrita direta pelo override
    - conflito de tipos → erro estrutural explícito

2. `merge_records` — slots do tipo ATTRS (records multi-contribuidor):
    - dict → merge recursivo por chave
    - folhas iguais → aceitas
    - folhas divergentes → DuplicateKeyError (sem last-write-wins)

Princípios fundamentais:
    - O merge é determinístico e puramente funcional
    - Nenhum input é mutado durante o processo
    - Não existem heurísticas implícitas

Limites explícitos:
    - Não carrega arquivos de configuração
    - Não realiza coerção de tipos
    - Não avalia prioridades nem condições
"""

from copy import deepcopy
from typing import Any, Dict, Sequence, Tuple

from atlas_provision.core.options.errors import DuplicateKeyError

from .errors import ConfigTypeConflictError


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Realiza um deep-merge determinístico entre settings base e overrides.

    Política de merge (v1):
        - dict + dict → merge recursivo por chave
        - list        → sobrescrita total (sem merge elemento a elemento)
        - escalar     → sobrescrita direta pelo override
        - conflito de tipos → erro estrutural explícito

    Invariantes:
        - A estrutura retornada é sempre um novo dicionário
        - Chaves não presentes no override são preservadas da base

    Args:
        base (Dict[str, Any]): Settings base (defaults).
        override (Dict[str, Any]): Overrides locais.

    Returns:
        Dict[str, Any]: Nova estrutura resultante.

    Raises:
        ConfigTypeConflictError: Se ocorrer conflito de tipo entre base e override.
    """

    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requer dicts no nível raiz, recebido: "
            f"{type(base).__name__} vs {type(override).__name__}"
        )

    result: Dict[str, Any] = deepcopy(base)

    for key, override_value in override.items():
        if key not in result:
            result[key] = deepcopy(override_value)
            continue

        base_value = result[key]

        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(base_value, override_value)
            continue

        if isinstance(override_value, list):
            result[key] = deepcopy(override_value)
            continue

        if type(base_value) is not type(override_value):
            raise ConfigTypeConflictError(
                f"Conflito de tipo na chave '{key}': "
                f"{type(base_value).__name__} vs {type(override_value).__name__}"
            )

        result[key] = deepcopy(override_value)

    return result


def _owner(owners: Dict[Tuple[str, ...], str], path: Tuple[str, ...]) -> str:
    for i in range(len(path), 0, -1):
        found = owners.get(path[:i])
        if found is not None:
            return found
    return "<unknown>"


def _merge_into(
    slot_id: str,
    target: Dict[str, Any],
    incoming: Dict[str, Any],
    source: str,
    owners: Dict[Tuple[str, ...], str],
    prefix: Tuple[str, ...],
) -> None:
    for key, value in incoming.items():
        path = prefix + (key,)

        if key not in target:
            target[key] = deepcopy(value)
            owners[path] = source
            continue

        existing = target[key]

        if isinstance(existing, dict) and isinstance(value, dict):
            _merge_into(slot_id, existing, value, source, owners, path)
            continue

        if existing == value:
            continue

        raise DuplicateKeyError(slot_id, ".".join(path), [_owner(owners, path), source])


def merge_records(slot_id: str, records: Sequence[Tuple[str, Dict[str, Any]]]) -> Dict[str, Any]:
    """
    Combina records (ATTRS) de várias fontes por união de chaves.

    Cada item de `records` é um par `(source, record)`. Sub-records
    (dicts) sob a mesma chave são combinados recursivamente; folhas
    definidas por mais de uma fonte precisam ser iguais.

    Raises:
        DuplicateKeyError: Se duas fontes definirem valores distintos
            para o mesmo caminho de chave.
    """
    result: Dict[str, Any] = {}
    owners: Dict[Tuple[str, ...], str] = {}
    for source, record in records:
        _merge_into(slot_id, result, record, source, owners, ())
    return result
