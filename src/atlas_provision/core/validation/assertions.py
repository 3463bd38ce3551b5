# src/atlas_provision/core/validation/assertions.py
"""
Assertion Validator — invariantes transversais sobre a configuração resolvida.

Este módulo avalia, em um único pass dedicado, todas as asserções
declaradas pelos módulos sobre a `ResolvedConfig`, antes que qualquer
Artifact seja materializado ou Action executada.

Princípios fundamentais:
    - Todas as asserções são avaliadas (sem short-circuit)
    - Falhas são agregadas em um único `ValidationError`
    - Uma asserção cujo predicado levanta exceção conta como falha,
      com a causa registrada

Também define `ConfigWarning`: mesma forma de uma asserção, porém não fatal;
`collect_warnings` devolve as mensagens cujo predicado é verdadeiro
(ex.: uso de uma opção depreciada).

Limites explícitos:
    - Não resolve configuração
    - Não planeja nem executa Actions
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Sequence


Predicate = Callable[[Mapping[str, Any]], bool]


@dataclass(frozen=True)
class Assertion:
    """Predicado sobre a ResolvedConfig + mensagem exibida quando falha."""
    predicate: Predicate = field(compare=False, repr=False)
    message: str
    id: Optional[str] = None


@dataclass(frozen=True)
class ConfigWarning:
    """Condição não fatal; a mensagem é emitida quando o predicado é verdadeiro."""
    predicate: Predicate = field(compare=False, repr=False)
    message: str
    id: Optional[str] = None


@dataclass(frozen=True)
class AssertionFailure:
    id: Optional[str]
    message: str
    cause: Optional[str] = None

    def to_dict(self) -> dict:
        return {"id": self.id, "message": self.message, "cause": self.cause}


class ValidationError(Exception):
    """
    Agrega todas as asserções violadas de um pass de validação.

    Invariantes:
        - `failures` nunca é vazio
        - A ordem de `failures` segue a ordem de declaração das asserções
    """

    def __init__(self, failures: Sequence[AssertionFailure]):
        self.failures: List[AssertionFailure] = list(failures)
        lines = [f"{len(self.failures)} assertion(s) failed:"]
        for f in self.failures:
            label = f"[{f.id}] " if f.id else ""
            line = f"  - {label}{f.message.strip()}"
            if f.cause:
                line += f" (error: {f.cause})"
            lines.append(line)
        super().__init__("\n".join(lines))

    @property
    def messages(self) -> List[str]:
        return [f.message for f in self.failures]


def validate(resolved: Mapping[str, Any], assertions: Sequence[Assertion]) -> None:
    """
    Avalia todas as asserções e falha com a lista completa de violações.

    Args:
        resolved (Mapping[str, Any]): Configuração resolvida.
        assertions (Sequence[Assertion]): Asserções declaradas.

    Raises:
        ValidationError: Se ao menos uma asserção não for satisfeita.
    """
    failures: List[AssertionFailure] = []
    for a in assertions:
        try:
            ok = bool(a.predicate(resolved))
        except Exception as exc:
            failures.append(
                AssertionFailure(id=a.id, message=a.message, cause=f"{type(exc).__name__}: {exc}")
            )
            continue
        if not ok:
            failures.append(AssertionFailure(id=a.id, message=a.message))

    if failures:
        raise ValidationError(failures)


def collect_warnings(resolved: Mapping[str, Any], warnings: Sequence[ConfigWarning]) -> List[str]:
    """
    Devolve as mensagens cujo predicado é verdadeiro.

    Um predicado que levanta exceção não interrompe a coleta: a mensagem
    é emitida com a causa anexada, como em `validate`.
    """
    messages: List[str] = []
    for w in warnings:
        try:
            hit = bool(w.predicate(resolved))
        except Exception as exc:
            messages.append(f"{w.message} (error: {type(exc).__name__}: {exc})")
            continue
        if hit:
            messages.append(w.message)
    return messages
