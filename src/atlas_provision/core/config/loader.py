# src/atlas_provision/core/config/loader.py
"""
Loader canônico de settings do Atlas Provision.

Settings controlam o engine, não o sistema provisionado: política de
fail-fast, diretório de estado, raiz do alvo e flags externas usadas
pelas condições dos módulos.

Os settings são resolvidos a partir de:
    - um arquivo de defaults (obrigatório)
    - um arquivo local de overrides (opcional)

Princípios fundamentais:
    - Configuração é declarativa e explícita
    - Erros estruturais são tratados como falhas fatais
    - A mesma entrada sempre produz os mesmos settings

Invariantes:
    - O arquivo de defaults é obrigatório
    - O resultado de `load_config` é sempre um dicionário puro (`dict`)
    - Overrides nunca mutam os defaults

Limites explícitos:
    - Não declara nem resolve opções (ver `core.options`)
    - Não persiste settings
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Type
import json

import yaml  # PyYAML

from .merge import deep_merge
from .errors import (
    ConfigError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    InvalidSettingsError,
    UnsupportedConfigFormatError,
)


def read_mapping(path: Path, *, missing: Type[ConfigError] = DefaultsNotFoundError) -> Dict[str, Any]:
    """
    Carrega um arquivo YAML/JSON e valida que a raiz é um dicionário.

    Decisões arquiteturais:
        - O arquivo deve existir no momento do carregamento
        - Arquivos vazios são interpretados como dicionários vazios
        - Formatos não suportados geram erro explícito

    Args:
        path (Path): Caminho do arquivo.
        missing (Type[ConfigError]): Exceção levantada se o arquivo não existir.

    Returns:
        Dict[str, Any]: Conteúdo carregado.

    Raises:
        ConfigError: `missing` se o arquivo não existir.
        UnsupportedConfigFormatError: Se o formato não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo raiz não for um dicionário.
    """
    if not path.exists():
        raise missing(f"Arquivo não encontrado: {path}")

    suffix = path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)

    else:
        raise UnsupportedConfigFormatError(f"Formato não suportado: {path.suffix}")

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root deve ser dict, recebido: {type(data).__name__}"
        )

    return data


def load_config(
    *,
    defaults_path: str,
    local_path: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Carrega e resolve os settings efetivos do engine.

    Política de resolução:
        - O arquivo de defaults é obrigatório
        - O arquivo local é opcional (ignorado se não existir)
        - Quando presente, o local sempre tem prioridade sobre defaults
        - A resolução utiliza `deep_merge`

    Args:
        defaults_path (str): Caminho para o arquivo de settings base.
        local_path (Optional[str]): Caminho opcional para overrides locais.

    Returns:
        Dict[str, Any]: Settings resolvidos.

    Raises:
        DefaultsNotFoundError: Se o arquivo de defaults não existir.
        UnsupportedConfigFormatError: Se o formato do arquivo não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo não for um dicionário.
        ConfigTypeConflictError: Se ocorrer conflito estrutural durante o merge.
    """
    effective = read_mapping(Path(defaults_path))

    if local_path is not None:
        local_file = Path(local_path)
        if local_file.exists():
            effective = deep_merge(effective, read_mapping(local_file))

    return effective


@dataclass(frozen=True)
class ProvisionSettings:
    """
    Settings tipados de um pass de provisionamento.

    Campos:
        - state_dir: diretório do estado persistido (markers, digests, manifest)
        - target_root: raiz sob a qual os artifacts são escritos
        - fail_fast: interrompe o pass na primeira falha
        - flags: flags externas visíveis às condições
    """

    state_dir: Path
    target_root: Path = Path("/")
    fail_fast: bool = True
    flags: Dict[str, Any] = field(default_factory=dict)

    def engine_settings(self) -> Dict[str, Any]:
        return {"engine": {"fail_fast": self.fail_fast}}


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = cfg.get(name, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidSettingsError(f"'{name}' deve ser dict, recebido: {type(value).__name__}")
    return value


def settings_from_config(cfg: Dict[str, Any]) -> ProvisionSettings:
    """
    Constrói ProvisionSettings a partir do dict de `load_config`.

    Chaves reconhecidas: `engine.fail_fast`, `state.dir` (obrigatória),
    `target.root`, `flags`.

    Raises:
        InvalidSettingsError: Chave obrigatória ausente ou tipo inválido.
    """
    engine = _section(cfg, "engine")
    state = _section(cfg, "state")
    target = _section(cfg, "target")
    flags = _section(cfg, "flags")

    state_dir = state.get("dir")
    if not isinstance(state_dir, str) or not state_dir.strip():
        raise InvalidSettingsError("'state.dir' é obrigatório e deve ser string não vazia")

    root = target.get("root", "/")
    if not isinstance(root, str) or not root.strip():
        raise InvalidSettingsError("'target.root' deve ser string não vazia")

    fail_fast = engine.get("fail_fast", True)
    if not isinstance(fail_fast, bool):
        raise InvalidSettingsError("'engine.fail_fast' deve ser bool")

    return ProvisionSettings(
        state_dir=Path(state_dir),
        target_root=Path(root),
        fail_fast=fail_fast,
        flags=dict(flags),
    )
