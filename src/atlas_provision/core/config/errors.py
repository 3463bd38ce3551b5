# src/atlas_provision/core/config/errors.py
"""
Exceções canônicas da camada de configuração do Atlas Provision.

Este módulo define a hierarquia oficial de exceções utilizadas durante
o carregamento de settings do engine e de arquivos de definições do
usuário.

Princípios fundamentais:
    - Exceções são tipadas e semânticas
    - Erros estruturais são tratados como falhas fatais
    - Mensagens de erro são claras e direcionadas ao operador

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`
    - Nenhuma exceção representa erro de resolução de opções (ver
      `core.options.errors`) ou de execução de Action

Limites explícitos:
    - Não realiza fallback ou recovery
"""


class ConfigError(Exception):
    """
    Exceção base para erros de configuração do Atlas Provision.

    Permite captura genérica de falhas de carregamento e distingue falhas
    estruturais de falhas de execução do plano.
    """


class DefaultsNotFoundError(ConfigError):
    """
    Exceção levantada quando o arquivo de settings base (defaults)
    não é encontrado no caminho especificado.

    Decisões arquiteturais:
        - O arquivo de defaults é obrigatório
        - Não há tentativa de inferir ou criar defaults automaticamente
    """


class DefinitionsNotFoundError(ConfigError):
    """Arquivo de definições do usuário não encontrado."""


class UnsupportedConfigFormatError(ConfigError):
    """
    Exceção levantada quando o formato do arquivo não é suportado.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)

    Limites explícitos:
        - Não tenta inferir formato por conteúdo
    """


class InvalidConfigRootTypeError(ConfigError):
    """
    Exceção levantada quando o conteúdo raiz não é um dicionário (`dict`).

    Listas ou valores escalares no root são inválidos, tanto para
    settings quanto para definições.
    """


class ConfigTypeConflictError(ConfigError):
    """
    Exceção levantada quando ocorre conflito de tipos durante o deep-merge.

    Exemplo de conflito:
        - base:     {"engine": {"fail_fast": true}}
        - override: {"engine": "DEBUG"}

    Invariantes:
        - Nenhum merge parcial é produzido em caso de conflito
    """


class InvalidSettingsError(ConfigError):
    """Settings com chave obrigatória ausente ou valor de tipo inválido."""
