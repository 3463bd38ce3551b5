# src/atlas_provision/core/engine/__init__.py
"""
Engine do Atlas Provision.

Este pacote contém a implementação responsável por **planejar** e
**executar** a ativação de uma configuração resolvida: arquivos a
materializar, serviços a manter ativos e ações únicas de bootstrap.

Componentes principais:
    - planner → plano de ativação (DAG) determinístico e validações estruturais
    - engine  → execução coordenada de Actions com políticas explícitas

Princípios fundamentais:
    - Planejamento e execução são responsabilidades separadas
    - A ordem de execução é determinística para o mesmo grafo
    - Nenhuma decisão silenciosa é tomada durante a execução
    - Políticas de execução são controladas por configuração

Invariantes:
    - Actions só são executadas após seus predecessores
    - Cada Action é executada no máximo uma vez por pass
    - O resultado da execução reflete explicitamente o estado de cada Action

Limites explícitos:
    - Não declara opções nem resolve configuração
    - Não renderiza formatos de arquivo (templates são opacos)
"""

from .engine import Engine, ExecutionResult, execute_plan
from .planner import CyclicDependencyError, UnknownDependencyError, plan_activation, toposort

__all__ = [
    "CyclicDependencyError",
    "Engine",
    "ExecutionResult",
    "UnknownDependencyError",
    "execute_plan",
    "plan_activation",
    "toposort",
]
