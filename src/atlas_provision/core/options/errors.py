# src/atlas_provision/core/options/errors.py
"""
Exceções canônicas da camada de opções do Atlas Provision.

Este módulo define a hierarquia oficial de exceções levantadas durante a
declaração de slots, a coleta de contribuições e a resolução (merge) da
configuração final.

As exceções aqui definidas representam **violações estruturais
explícitas** da configuração declarativa, e não erros de execução de
Actions.

Momento de falha:
    - declaração / coleta  → DuplicateSlotError, UnknownSlotError,
                             TypeMismatchError, RegistryFrozenError
    - resolução            → ConflictError, DuplicateKeyError,
                             RecursiveResolutionError
    - consumo              → UndefinedSlotError

Invariantes:
    - Todas as exceções herdam de `OptionError`
    - Toda falha ocorre antes de qualquer efeito colateral
    - Mensagens nomeiam o slot e, quando houver, as fontes envolvidas

Limites explícitos:
    - Não executa recovery nem escolhe um lado em conflitos
    - Não depende de Engine, planner ou estado persistido
"""

from __future__ import annotations

from typing import Any, Sequence


class OptionError(Exception):
    """
    Exceção base para erros de declaração, coleta e resolução de opções.

    Permite captura genérica de qualquer falha da camada de opções,
    distinguindo-a de falhas de validação, planejamento ou execução.
    """


class DuplicateSlotError(OptionError):
    """Slot declarado duas vezes no mesmo registry."""

    def __init__(self, slot_id: str):
        super().__init__(f"Duplicate option slot: {slot_id}")
        self.slot_id = slot_id


class UnknownSlotError(OptionError, KeyError):
    """Referência a um slot que nunca foi declarado."""

    def __init__(self, slot_id: str):
        super().__init__(f"Unknown option slot: {slot_id}")
        self.slot_id = slot_id

    def __str__(self) -> str:
        # KeyError.__str__ aplica repr() ao argumento
        return str(self.args[0])


class TypeMismatchError(OptionError, TypeError):
    """
    Valor incompatível com o tipo declarado do slot.

    Levantada na declaração (default inválido) ou na coleta
    (contribuição inválida), nunca durante o merge.
    """

    def __init__(self, slot_id: str, expected: str, value: Any, source: str | None = None):
        where = f" (source: {source})" if source else ""
        super().__init__(
            f"Type mismatch for option '{slot_id}': expected {expected}, "
            f"got {type(value).__name__}{where}"
        )
        self.slot_id = slot_id
        self.expected = expected
        self.value = value
        self.source = source


class RegistryFrozenError(OptionError):
    """Declaração de slot após o fim da fase de inicialização do registry."""

    def __init__(self, slot_id: str):
        super().__init__(f"Option registry is frozen; cannot declare '{slot_id}'")
        self.slot_id = slot_id


class ConflictError(OptionError):
    """
    Contribuições escalares divergentes com a mesma prioridade.

    Decisões arquiteturais:
        - Nenhum lado é escolhido silenciosamente
        - A mensagem nomeia o slot e as duas fontes em conflito

    Invariantes:
        - `sources` contém exatamente as duas primeiras fontes divergentes
    """

    def __init__(self, slot_id: str, sources: Sequence[str], values: Sequence[Any]):
        first, second = sources[0], sources[1]
        super().__init__(
            f"Conflicting definitions for option '{slot_id}': "
            f"{values[0]!r} from '{first}' vs {values[1]!r} from '{second}'"
        )
        self.slot_id = slot_id
        self.sources = list(sources)
        self.values = list(values)


class DuplicateKeyError(OptionError):
    """
    Mesma chave de um record (ATTRS) definida com valores distintos.

    A colisão de chaves em merges de record é sempre erro; não existe
    política last-write-wins.
    """

    def __init__(self, slot_id: str, key_path: str, sources: Sequence[str]):
        super().__init__(
            f"Duplicate key '{key_path}' in option '{slot_id}' "
            f"defined by '{sources[0]}' and '{sources[1]}'"
        )
        self.slot_id = slot_id
        self.key_path = key_path
        self.sources = list(sources)


class RecursiveResolutionError(OptionError):
    """A resolução de um slot depende (via condições) do próprio slot."""

    def __init__(self, chain: Sequence[str]):
        super().__init__("Infinite recursion while resolving options: " + " -> ".join(chain))
        self.chain = list(chain)


class UndefinedSlotError(OptionError, KeyError):
    """Slot sem default e sem contribuições foi consumido."""

    def __init__(self, slot_id: str):
        super().__init__(
            f"Option '{slot_id}' is used but not defined "
            f"(no default and no active contribution)"
        )
        self.slot_id = slot_id

    def __str__(self) -> str:
        return str(self.args[0])
