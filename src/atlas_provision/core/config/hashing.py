# src/atlas_provision/core/config/hashing.py
"""
Hashing canônico do Atlas Provision.

Este módulo implementa os dois hashes determinísticos usados pelo engine:

    - compute_config_hash → identidade estrutural da configuração resolvida,
      registrada no Manifest de cada pass
    - content_digest      → identidade do conteúdo de um Artifact, usada
      para detectar mudanças e disparar restarts

Princípios fundamentais:
    - Hashing determinístico e reprodutível
    - Independente da ordem original das chaves
    - Baseado em serialização JSON canônica
    - Algoritmo criptográfico estável (SHA-256)

Invariantes:
    - Configurações estruturalmente equivalentes produzem o mesmo hash
    - O valor gerado é sempre uma string hexadecimal de 64 caracteres

Limites explícitos:
    - Não resolve configuração
    - Não persiste hashes
"""


import hashlib
import json
from typing import Any, Dict, Union


def _opaque(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    # valores REFERENCE são opacos; entram no hash pela representação textual
    return repr(value)


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Gera um hash determinístico da configuração resolvida.

    Política de hashing (v1):
        - Serialização JSON canônica (`sort_keys`, separadores compactos)
        - Valores não serializáveis entram pela representação textual
        - Codificação UTF-8, SHA-256

    Args:
        config (Dict[str, Any]): Árvore da configuração (ex.: `ResolvedConfig.to_dict()`).

    Returns:
        str: Hash SHA-256 hexadecimal.

    Raises:
        TypeError: Se o objeto fornecido não for um dicionário.
    """

    if not isinstance(config, dict):
        raise TypeError(
            f"Config para hashing deve ser dict, recebido: {type(config).__name__}"
        )

    canonical_json = json.dumps(
        config,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_opaque,
    )

    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()


def content_digest(content: Union[str, bytes]) -> str:
    """Digest SHA-256 hexadecimal do conteúdo de um Artifact."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()
