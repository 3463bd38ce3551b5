# src/atlas_provision/core/provision.py
"""
Orquestração de um pass de provisionamento.

Este módulo encadeia os componentes do core na ordem canônica:

    declare → collect → resolve → validate → plan → execute

Fases:
    - `evaluate`  → registry, coleta, resolução, validação e warnings.
      Puro: nenhum efeito colateral, nenhum estado lido.
    - `provision` → `evaluate` + estado materializado anterior + plano +
      lock do pass + execução + persistência do Manifest.

Decisões arquiteturais:
    - Qualquer erro antes de existir um plano aborta o pass sem efeitos
    - O lock do pass cobre leitura do estado anterior, planejamento e
      execução
    - O Manifest é salvo ao final de todo pass, inclusive em falha

Limites explícitos:
    - Não faz rollback de Actions concluídas
    - Transporte remoto exige um ActionRunner injetado; o default é o
      LocalRunner sob `settings.target_root`
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import uuid

from atlas_provision.core.config.definitions import flatten_definitions, load_definitions
from atlas_provision.core.config.hashing import compute_config_hash
from atlas_provision.core.config.loader import ProvisionSettings
from atlas_provision.core.engine.engine import Engine, ExecutionResult
from atlas_provision.core.engine.planner import plan_activation
from atlas_provision.core.modules import Module, check_module_ids
from atlas_provision.core.options.collector import ContributionCollector
from atlas_provision.core.options.conditions import all_of, evaluate as condition_holds
from atlas_provision.core.options.registry import OptionRegistry
from atlas_provision.core.options.resolver import ResolvedConfig, resolve
from atlas_provision.core.options.types import Priority
from atlas_provision.core.plan.runner import ActionRunner, LocalRunner, SystemctlServiceManager
from atlas_provision.core.plan.types import ActivationPlan
from atlas_provision.core.run_context import ProvisionContext
from atlas_provision.core.state.lock import pass_lock
from atlas_provision.core.state.store import MaterializedState, StateStore
from atlas_provision.core.traceability import manifest as mf
from atlas_provision.core.validation.assertions import collect_warnings, validate


ATLAS_PROVISION_VERSION = "0.1.0"

Definitions = Union[str, Path, Mapping[str, Any]]


@dataclass(frozen=True)
class Evaluation:
    """
    Resultado da avaliação declarativa (sem efeitos).

    Campos:
        - registry: registry congelado com todos os slots
        - resolved: configuração resolvida e validada
        - warnings: pares `(module_id, mensagem)` não fatais
        - modules: modules avaliados, na ordem recebida
        - flags: flags externas usadas pelas condições
    """

    registry: OptionRegistry
    resolved: ResolvedConfig
    warnings: List[Tuple[str, str]] = field(default_factory=list)
    modules: List[Module] = field(default_factory=list)
    flags: Dict[str, Any] = field(default_factory=dict)

    @property
    def config_hash(self) -> str:
        return compute_config_hash(self.resolved.to_dict())

    def plan(self, previous: Optional[MaterializedState] = None) -> ActivationPlan:
        """Planeja os templates de todos os modules; a condição do module gateia cada template."""
        return plan_activation(
            self.resolved,
            artifacts=[t for m in self.modules for t in _gated(m, m.artifacts)],
            services=[t for m in self.modules for t in _gated(m, m.services)],
            bootstraps=[t for m in self.modules for t in _gated(m, m.bootstraps)],
            flags=self.flags,
            previous=previous,
        )


def _gated(module: Module, templates: Sequence[Any]) -> List[Any]:
    if module.condition is None:
        return list(templates)
    out: List[Any] = []
    for t in templates:
        # a condição do module é avaliada primeiro (short-circuit)
        cond = module.condition if t.condition is None else all_of(module.condition, t.condition)
        out.append(replace(t, condition=cond))
    return out


@dataclass(frozen=True)
class ProvisionResult:
    evaluation: Evaluation
    plan: ActivationPlan
    execution: ExecutionResult
    manifest: mf.ProvisionManifest
    ctx: ProvisionContext

    @property
    def ok(self) -> bool:
        return self.execution.ok

    def raise_for_failure(self) -> None:
        self.execution.raise_for_failure()


def _propose_definitions(
    collector: ContributionCollector,
    registry: OptionRegistry,
    definitions: Iterable[Definitions],
) -> None:
    for item in definitions:
        if isinstance(item, Mapping):
            pairs = flatten_definitions(dict(item), registry)
            source = "definitions:<inline>"
        else:
            pairs = load_definitions(item, registry)
            source = f"definitions:{Path(item).name}"
        for slot_id, value in pairs:
            collector.propose(slot_id, value, Priority.EXPLICIT, source=source)


def evaluate(
    modules: Sequence[Module],
    *,
    flags: Optional[Mapping[str, Any]] = None,
    definitions: Iterable[Definitions] = (),
) -> Evaluation:
    """
    Declara, coleta, resolve e valida a configuração de um conjunto de modules.

    Asserções e warnings de um module só são avaliados quando a condição
    do module é verdadeira sobre a configuração resolvida.

    Args:
        modules (Sequence[Module]): Pontos de declaração.
        flags (Optional[Mapping[str, Any]]): Flags externas para condições.
        definitions (Iterable): Arquivos (YAML/JSON) ou mapas aninhados
            com valores explícitos do usuário.

    Returns:
        Evaluation: Configuração resolvida, validada e warnings.

    Raises:
        OptionError: Slot duplicado/desconhecido, tipo, conflito, recursão.
        ConfigError: Arquivo de definições ausente ou inválido.
        ValidationError: Asserções violadas (lista completa).
    """
    mods = check_module_ids(modules)
    flags = dict(flags or {})

    registry = OptionRegistry()
    for m in mods:
        if m.options is not None:
            m.options(registry)
    registry.freeze()

    collector = ContributionCollector(registry)
    for m in mods:
        if m.config is not None:
            m.config(collector.scoped(source=m.id, condition=m.condition))
    _propose_definitions(collector, registry, definitions)

    resolved = resolve(registry, collector.contributions(), flags)

    active = [m for m in mods if condition_holds(m.condition, resolved, flags)]

    validate(resolved, [a for m in active for a in m.assertions])

    warnings: List[Tuple[str, str]] = []
    for m in active:
        for message in collect_warnings(resolved, m.warnings):
            warnings.append((m.id, message))

    return Evaluation(registry=registry, resolved=resolved, warnings=warnings, modules=mods, flags=flags)


def provision(
    modules: Sequence[Module],
    *,
    settings: ProvisionSettings,
    runner: Optional[ActionRunner] = None,
    definitions: Iterable[Definitions] = (),
    run_id: Optional[str] = None,
) -> ProvisionResult:
    """
    Executa um pass completo de provisionamento.

    Args:
        modules (Sequence[Module]): Pontos de declaração.
        settings (ProvisionSettings): Settings do engine (state_dir, flags...).
        runner (Optional[ActionRunner]): Executor de escrita de arquivos e
            serviços. Default: LocalRunner sob `settings.target_root` com
            serviços via `systemctl`.
        definitions (Iterable): Definições explícitas do usuário.
        run_id (Optional[str]): Identificador do pass (uuid4 por padrão).

    Returns:
        ProvisionResult: Avaliação, plano, resultado da execução e Manifest.

    Raises:
        OptionError / ConfigError / ValidationError: antes de qualquer efeito.
        UnknownDependencyError / CyclicDependencyError: no planejamento.
        ConcurrentPassError: Outro pass detém o lock do state_dir.
    """
    evaluation = evaluate(modules, flags=settings.flags, definitions=definitions)
    if runner is None:
        runner = LocalRunner(root=settings.target_root, services=SystemctlServiceManager())
    store = StateStore(state_dir=settings.state_dir)

    with pass_lock(settings.state_dir):
        plan = evaluation.plan(store.load_materialized())

        run_id = run_id or uuid.uuid4().hex
        manifest = mf.create_manifest(
            run_id=run_id,
            started_at=datetime.now(timezone.utc),
            version=ATLAS_PROVISION_VERSION,
            config_hash=evaluation.config_hash,
            flags=evaluation.flags,
            plan=plan.to_dict()["actions"],
        )
        ctx = ProvisionContext.create(
            run_id=run_id,
            config=evaluation.resolved,
            flags=evaluation.flags,
            settings=settings.engine_settings(),
            manifest=manifest,
        )

        for source, message in evaluation.warnings:
            ctx.add_warning(source=source, message=message)
            ctx.log(action_id=None, level="warning", message=message, source=source)
            mf.add_event(
                manifest,
                event_type="warning",
                ts=datetime.now(timezone.utc),
                payload={"source": source, "message": message},
            )

        status = "failed"
        try:
            execution = Engine(plan=plan, ctx=ctx, runner=runner, store=store).run()
            status = "success" if execution.ok else "failed"
        finally:
            mf.run_finished(manifest, ts=datetime.now(timezone.utc), status=status)
            mf.save_manifest(manifest, store.manifest_path())

    return ProvisionResult(
        evaluation=evaluation,
        plan=plan,
        execution=execution,
        manifest=manifest,
        ctx=ctx,
    )
