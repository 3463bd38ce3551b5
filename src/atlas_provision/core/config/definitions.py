# src/atlas_provision/core/config/definitions.py
"""
Definições do usuário: valores explícitos para slots declarados.

Um arquivo de definições é um mapa aninhado (YAML ou JSON) cujo caminho
de chaves forma o id do slot:

    database:
      host: db.internal
    plugins: [archive, zipdownload]

Regras de leitura:
    - um caminho que coincide com um slot encerra a descida; o valor
      inteiro é atribuído ao slot (inclusive subárvores de slots ATTRS)
    - um caminho que é prefixo de slots exige um dicionário e desce
    - qualquer outro caminho é erro (`UnknownSlotError`)

As definições entram na resolução com prioridade EXPLICIT e origem
`definitions:<arquivo>`; a checagem de tipo ocorre na coleta.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from atlas_provision.core.options.errors import UnknownSlotError
from atlas_provision.core.options.registry import OptionRegistry

from .errors import DefinitionsNotFoundError
from .loader import read_mapping


def _is_prefix(registry: OptionRegistry, path: str) -> bool:
    head = path + "."
    return any(slot.id.startswith(head) for slot in registry)


def flatten_definitions(data: Dict[str, Any], registry: OptionRegistry) -> List[Tuple[str, Any]]:
    """Achata um mapa aninhado em pares `(slot_id, valor)` na ordem do arquivo."""
    out: List[Tuple[str, Any]] = []

    def walk(prefix: str, node: Dict[str, Any]) -> None:
        for key, value in node.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            if path in registry:
                out.append((path, value))
            elif isinstance(value, dict) and _is_prefix(registry, path):
                walk(path, value)
            else:
                raise UnknownSlotError(path)

    walk("", data)
    return out


def load_definitions(path: Union[str, Path], registry: OptionRegistry) -> List[Tuple[str, Any]]:
    """
    Carrega um arquivo de definições e devolve pares `(slot_id, valor)`.

    Raises:
        DefinitionsNotFoundError: Se o arquivo não existir.
        UnsupportedConfigFormatError: Formato diferente de YAML/JSON.
        InvalidConfigRootTypeError: Raiz não é um dicionário.
        UnknownSlotError: Caminho que não corresponde a nenhum slot.
    """
    data = read_mapping(Path(path), missing=DefinitionsNotFoundError)
    return flatten_definitions(data, registry)
