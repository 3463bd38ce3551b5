# src/atlas_provision/core/options/conditions.py
"""
Condições de ativação para contribuições e gating de templates.

Uma condição é qualquer callable `(config, flags) -> bool`, onde:
    - `config` é a configuração (resolvida ou em resolução lazy)
    - `flags` são flags externas fornecidas ao pass (ex.: `unpriv`)

As mesmas condições servem tanto para ativar contribuições no Merge
Resolver quanto para incluir/omitir nós no Activation Planner.
"""

from __future__ import annotations

from typing import Any, Mapping

from .types import Condition


def always(config: Mapping[str, Any], flags: Mapping[str, Any]) -> bool:
    return True


def never(config: Mapping[str, Any], flags: Mapping[str, Any]) -> bool:
    return False


def flag(name: str) -> Condition:
    """Verdadeira quando a flag externa `name` está presente e é truthy."""

    def _cond(config: Mapping[str, Any], flags: Mapping[str, Any]) -> bool:
        return bool((flags or {}).get(name, False))

    _cond.__qualname__ = f"flag({name!r})"
    return _cond


def option(slot_id: str, expected: Any = True) -> Condition:
    """Verdadeira quando o valor resolvido de `slot_id` é igual a `expected`."""

    def _cond(config: Mapping[str, Any], flags: Mapping[str, Any]) -> bool:
        return config[slot_id] == expected

    _cond.__qualname__ = f"option({slot_id!r}, {expected!r})"
    return _cond


def all_of(*conditions: Condition) -> Condition:
    def _cond(config: Mapping[str, Any], flags: Mapping[str, Any]) -> bool:
        return all(c(config, flags) for c in conditions)

    return _cond


def any_of(*conditions: Condition) -> Condition:
    def _cond(config: Mapping[str, Any], flags: Mapping[str, Any]) -> bool:
        return any(c(config, flags) for c in conditions)

    return _cond


def negate(condition: Condition) -> Condition:
    def _cond(config: Mapping[str, Any], flags: Mapping[str, Any]) -> bool:
        return not condition(config, flags)

    return _cond


def evaluate(condition: Condition | None, config: Mapping[str, Any], flags: Mapping[str, Any]) -> bool:
    """Avalia uma condição opcional; `None` equivale a `always`."""
    if condition is None:
        return True
    return bool(condition(config, flags))
