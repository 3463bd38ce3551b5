# src/atlas_provision/core/plan/__init__.py
"""
Plano de ativação: templates, Actions, resultados e interface de execução.
"""

from .runner import ActionRunner, LocalRunner, ServiceManager, SystemctlServiceManager
from .types import (
    Action,
    ActionKind,
    ActionResult,
    ActionStatus,
    ActivationPlan,
    Artifact,
    ArtifactTemplate,
    BootstrapTemplate,
    ServiceTemplate,
)

__all__ = [
    "Action",
    "ActionKind",
    "ActionResult",
    "ActionRunner",
    "ActionStatus",
    "ActivationPlan",
    "Artifact",
    "ArtifactTemplate",
    "BootstrapTemplate",
    "LocalRunner",
    "ServiceManager",
    "ServiceTemplate",
    "SystemctlServiceManager",
]
