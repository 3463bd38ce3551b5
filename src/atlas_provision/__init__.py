# src/atlas_provision/__init__.py
"""
Atlas Provision — composição declarativa de configuração e provisionamento idempotente.

Este pacote raiz define o namespace público do Atlas Provision.

Princípios centrais:
    - Muitos módulos declaram opções e contribuem valores de forma independente
    - A resolução é determinística, com prioridades e condições explícitas
    - O plano de ativação é um DAG ordenado de escritas, serviços e bootstraps
    - Ações únicas são guardadas por estado externo e nunca repetidas
    - Rastreabilidade de cada pass é um requisito de primeira classe

Arquitetura em alto nível:
    - core.options      → slots, contribuições e resolução
    - core.validation   → asserções sobre a configuração resolvida
    - core.engine       → planejamento (DAG) e execução do plano
    - core.state        → estado persistido e bootstrap idempotente
    - core.traceability → Manifest e Event Log

Limites explícitos:
    - Não define módulos concretos de sistema
    - Não executa passes automaticamente
"""
from .core.options import (
    UNSET,
    ContributionCollector,
    OptionRegistry,
    OptionType,
    Priority,
    ResolvedConfig,
    resolve,
)
from .core.options import conditions
from .core.validation import Assertion, ConfigWarning, ValidationError
from .core.plan import ArtifactTemplate, BootstrapTemplate, ServiceTemplate
from .core.modules import Module
from .core.provision import ATLAS_PROVISION_VERSION, Evaluation, ProvisionResult, evaluate, provision

__version__ = ATLAS_PROVISION_VERSION

__all__ = [
    "UNSET",
    "Assertion",
    "ArtifactTemplate",
    "BootstrapTemplate",
    "ConfigWarning",
    "ContributionCollector",
    "Evaluation",
    "Module",
    "OptionRegistry",
    "OptionType",
    "Priority",
    "ProvisionResult",
    "ResolvedConfig",
    "ServiceTemplate",
    "ValidationError",
    "conditions",
    "evaluate",
    "provision",
    "resolve",
]
