# src/atlas_provision/core/engine/planner.py
"""
Activation Planner — plano de ativação ordenado (DAG).

Este módulo transforma a configuração resolvida e um conjunto de
templates (artifacts, serviços, bootstraps) em uma sequência linear de
Actions, pronta para execução e respeitando todas as dependências.

Fontes de arestas:
    - ordenação declarada entre nós (`after` / `before`, fracas)
    - dependência forte (`requires`)
    - restart triggers (a escrita do artifact precede o serviço)

Gating:
    - um template cuja condição avalia falso é omitido por inteiro
      (é assim que subsistemas opcionais entram ou saem do plano)

Princípios fundamentais:
    - O planner é uma função pura: não executa nada e não lê estado;
      o estado materializado anterior é recebido como argumento
    - A ordenação é determinística para a mesma entrada
    - Erros estruturais são fatais e ocorrem antes de qualquer efeito

Decisões arquiteturais:
    - Ordenação topológica determinística (Kahn modificado)
    - Empates são resolvidos por ordem lexicográfica do id
    - Ciclos são reportados nomeando o ciclo encontrado
    - `after`/`before` apontando para nós ausentes são ignorados
      (semântica de ordenação do systemd); `requires` e triggers ausentes
      são erro

Invariantes:
    - Nenhuma Action aparece antes de seus predecessores
    - Todos os nós incluídos aparecem exatamente uma vez
    - A mesma entrada produz sempre o mesmo plano

Limites explícitos:
    - Não executa Actions
    - Não interpreta o conteúdo dos artifacts
    - Não registra eventos de rastreabilidade
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from atlas_provision.core.config.hashing import content_digest
from atlas_provision.core.options.conditions import evaluate
from atlas_provision.core.plan.types import (
    Action,
    ActionKind,
    ActivationPlan,
    Artifact,
    ArtifactTemplate,
    BootstrapTemplate,
    ServiceTemplate,
)
from atlas_provision.core.state.store import MaterializedState


class UnknownDependencyError(ValueError):
    """
    Exceção levantada quando um nó exige (`requires`) um nó inexistente.

    Também cobre restart triggers que apontam para artifacts ausentes do
    plano (omitidos por gating ou nunca declarados).

    Decisões arquiteturais:
        - Dependências fortes devem ser resolvíveis
        - A validação ocorre antes de qualquer execução

    Limites explícitos:
        - Não tenta inferir ou criar nós ausentes
    """


class CyclicDependencyError(ValueError):
    """
    Exceção levantada quando o grafo de dependências contém um ciclo.

    O atributo `cycle` contém os ids do ciclo, com o primeiro id repetido
    no final (ex.: `["a", "b", "a"]`).

    Invariantes:
        - A existência de um ciclo invalida o planejamento
        - Nenhuma execução parcial é permitida em presença de ciclos
    """

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__("Cycle detected in action dependency graph: " + " -> ".join(self.cycle))


def _validate_id(node_id: Any, seen: Set[str]) -> str:
    if not isinstance(node_id, str) or not node_id.strip():
        raise ValueError("template id must be a non-empty string")
    if node_id in seen:
        raise ValueError(f"Duplicate template id: {node_id}")
    seen.add(node_id)
    return node_id


def _render(template: ArtifactTemplate, config: Mapping[str, Any]) -> Artifact:
    path, content = template.render(config)
    if not isinstance(path, str) or not path.strip():
        raise ValueError(f"artifact '{template.id}' rendered an empty path")
    data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
    return Artifact(
        id=template.id,
        path=path,
        content=data,
        digest=content_digest(data),
        mode=template.mode,
    )


def _find_cycle(remaining: Set[str], deps: Dict[str, Set[str]]) -> List[str]:
    """DFS determinística sobre os nós que o Kahn não conseguiu ordenar."""
    visiting: List[str] = []
    done: Set[str] = set()

    def visit(node: str) -> Optional[List[str]]:
        if node in visiting:
            start = visiting.index(node)
            return visiting[start:] + [node]
        if node in done:
            return None
        visiting.append(node)
        for dep in sorted(deps[node] & remaining):
            found = visit(dep)
            if found is not None:
                return found
        visiting.pop()
        done.add(node)
        return None

    for node in sorted(remaining):
        found = visit(node)
        if found is not None:
            # deps apontam para predecessores; inverte para a ordem de execução
            return list(reversed(found))
    return sorted(remaining)


def toposort(deps: Dict[str, Set[str]]) -> List[str]:
    """
    Ordenação topológica determinística (Kahn, empates por id).

    Args:
        deps: nó → conjunto de predecessores (todos presentes em `deps`).

    Raises:
        CyclicDependencyError: Se houver ciclo.
    """
    incoming_count: Dict[str, int] = {n: len(d) for n, d in deps.items()}
    outgoing: Dict[str, Set[str]] = {n: set() for n in deps}
    for node, dset in deps.items():
        for dep in dset:
            outgoing[dep].add(node)

    ready: List[str] = sorted(n for n, c in incoming_count.items() if c == 0)
    order: List[str] = []

    while ready:
        node = ready.pop(0)
        order.append(node)
        for child in sorted(outgoing[node]):
            incoming_count[child] -= 1
            if incoming_count[child] == 0:
                ready.append(child)
                ready.sort()

    if len(order) != len(deps):
        remaining = set(deps) - set(order)
        raise CyclicDependencyError(_find_cycle(remaining, deps))

    return order


def plan_activation(
    config: Mapping[str, Any],
    *,
    artifacts: Iterable[ArtifactTemplate] = (),
    services: Iterable[ServiceTemplate] = (),
    bootstraps: Iterable[BootstrapTemplate] = (),
    flags: Optional[Mapping[str, Any]] = None,
    previous: Optional[MaterializedState] = None,
) -> ActivationPlan:
    """
    Produz o plano de ativação ordenado para a configuração resolvida.

    Args:
        config (Mapping[str, Any]): Configuração resolvida e validada.
        artifacts (Iterable[ArtifactTemplate]): Templates de arquivos.
        services (Iterable[ServiceTemplate]): Serviços a manter ativos.
        bootstraps (Iterable[BootstrapTemplate]): Ações únicas.
        flags (Optional[Mapping[str, Any]]): Flags externas para gating.
        previous (Optional[MaterializedState]): Estado materializado do
            último pass, usado para `changed` (digest ou caminho diferente),
            restarts e stops.

    Returns:
        ActivationPlan: Actions em ordem topológica determinística.

    Raises:
        ValueError: Id inválido/duplicado ou caminho de artifact duplicado.
        UnknownDependencyError: `requires` ou trigger sem alvo no plano.
        CyclicDependencyError: Se houver ciclo no grafo.
    """
    flags = dict(flags or {})
    previous = previous or MaterializedState()

    seen: Set[str] = set()
    art_templates = list(artifacts)
    svc_templates = list(services)
    boot_templates = list(bootstraps)
    for t in [*art_templates, *svc_templates, *boot_templates]:
        _validate_id(t.id, seen)

    # Gating
    rendered: Dict[str, Artifact] = {}
    paths: Dict[str, str] = {}
    for t in art_templates:
        if not evaluate(t.condition, config, flags):
            continue
        art = _render(t, config)
        if art.path in paths:
            raise ValueError(
                f"Duplicate artifact path '{art.path}' ({paths[art.path]} and {t.id})"
            )
        paths[art.path] = t.id
        rendered[t.id] = art

    active_services = [s for s in svc_templates if evaluate(s.condition, config, flags)]
    active_boots = [b for b in boot_templates if evaluate(b.condition, config, flags)]

    units: Dict[str, Any] = {u.id: u for u in [*active_services, *active_boots]}
    present: Set[str] = set(rendered) | set(units)

    # Stops: serviços ativos no pass anterior que saíram do plano
    stop_ids: Dict[str, str] = {}
    for sid in sorted(previous.services):
        if sid not in units:
            stop_id = f"stop:{sid}"
            if stop_id in present:
                raise ValueError(f"Duplicate template id: {stop_id}")
            stop_ids[stop_id] = sid

    deps: Dict[str, Set[str]] = {n: set() for n in present}
    deps.update({n: set() for n in stop_ids})

    for uid, unit in units.items():
        for target in unit.after:
            if target in present and target != uid:
                deps[uid].add(target)
        for target in unit.before:
            if target in present and target != uid:
                deps[target].add(uid)
        for target in unit.requires:
            if target not in present:
                raise UnknownDependencyError(f"'{uid}' requires unknown or disabled node '{target}'")
            deps[uid].add(target)

    triggers: Dict[str, Dict[str, str]] = {}
    for svc in active_services:
        tmap: Dict[str, str] = {}
        for art_id in svc.restart_triggers:
            if art_id not in rendered:
                raise UnknownDependencyError(
                    f"Service '{svc.id}' has restart trigger on unknown or disabled artifact '{art_id}'"
                )
            tmap[art_id] = rendered[art_id].digest
            deps[svc.id].add(art_id)
        triggers[svc.id] = tmap

    order = toposort(deps)

    actions: List[Action] = []
    for node in order:
        predecessors: Tuple[str, ...] = tuple(sorted(deps[node]))

        if node in rendered:
            art = rendered[node]
            actions.append(
                Action(
                    id=node,
                    kind=ActionKind.WRITE_ARTIFACT,
                    predecessors=predecessors,
                    changed=(
                        previous.artifact_digest(node) != art.digest
                        or previous.artifact_path(node) != art.path
                    ),
                    artifact=art,
                )
            )
            continue

        if node in stop_ids:
            actions.append(Action(id=node, kind=ActionKind.STOP_SERVICE, predecessors=predecessors))
            continue

        unit = units[node]
        if isinstance(unit, BootstrapTemplate):
            actions.append(
                Action(id=node, kind=ActionKind.BOOTSTRAP, predecessors=predecessors, bootstrap=unit)
            )
            continue

        last = previous.service_triggers(node)
        current = triggers.get(node, {})
        kind = ActionKind.START_SERVICE
        if last is not None and last != current:
            kind = ActionKind.RESTART_SERVICE
        actions.append(Action(id=node, kind=kind, predecessors=predecessors, triggers=current))

    return ActivationPlan(actions=actions)
