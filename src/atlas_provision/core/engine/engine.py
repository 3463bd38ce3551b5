# src/atlas_provision/core/engine/engine.py
"""
Executor do plano de ativação do Atlas Provision.

O Engine percorre um ActivationPlan já ordenado e delega cada Action ao
ActionRunner (arquivos e serviços) ou ao BootstrapExecutor (ações
únicas), registrando resultados no ProvisionContext e no Manifest.

Regras de execução:
    - Actions são executadas sequencialmente, na ordem do plano
    - Uma Action cujo predecessor falhou (ou foi pulado por falha) é
      marcada SKIPPED e nunca tentada
    - WRITE_ARTIFACT com `changed=False` não reescreve o arquivo (UNCHANGED)
    - BOOTSTRAP já concluído em pass anterior resulta em UNCHANGED
    - Exceções viram ProvisionErrorPayload serializável no ActionResult
    - Com `engine.fail_fast` (default True) as Actions restantes são puladas

Estado persistido:
    - digest de cada artifact escrito com sucesso
    - digests de trigger com que cada serviço foi (re)iniciado
    - remoção do serviço parado do estado materializado

Limites explícitos:
    - Não faz rollback de Actions concluídas
    - Não planeja; recebe o plano pronto
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from atlas_provision.core.errors import (
    ProvisionErrorPayload,
    artifact_write_error,
    bootstrap_effect_error,
    engine_execution_error,
    service_operation_error,
)
from atlas_provision.core.exceptions import ActionFailedError
from atlas_provision.core.plan.runner import ActionRunner
from atlas_provision.core.plan.types import (
    Action,
    ActionKind,
    ActionResult,
    ActionStatus,
    ActivationPlan,
)
from atlas_provision.core.run_context import ProvisionContext
from atlas_provision.core.state.bootstrap import BootstrapExecutor, BootstrapOutcome
from atlas_provision.core.state.store import StateStore
from atlas_provision.core.traceability import manifest as mf


STOP_PREFIX = "stop:"


@dataclass(frozen=True)
class ExecutionResult:
    """Resultado agregado da execução de um plano (por action_id, em ordem)."""

    actions: Dict[str, ActionResult] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.first_failure is None

    @property
    def first_failure(self) -> Optional[ActionResult]:
        for r in self.actions.values():
            if r.status == ActionStatus.FAILED:
                return r
        return None

    def raise_for_failure(self) -> None:
        failed = self.first_failure
        if failed is None:
            return
        error = dict(failed.error or {})
        raise ActionFailedError(
            message=f"Action '{failed.action_id}' failed: {error.get('message', failed.summary)}",
            details={"action_id": failed.action_id, "kind": failed.kind.value, "error": error},
            hint=error.get("hint"),
        )


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Engine:
    """Engine canônico do Atlas Provision (executor do plano)."""

    def __init__(
        self,
        *,
        plan: ActivationPlan,
        ctx: ProvisionContext,
        runner: ActionRunner,
        store: StateStore,
        bootstrap_executor: Optional[BootstrapExecutor] = None,
    ):
        self.plan = plan
        self.ctx = ctx
        self.runner = runner
        self.store = store
        self.bootstrap_executor = bootstrap_executor or BootstrapExecutor(store)

    def _fail_fast(self) -> bool:
        engine_cfg = (self.ctx.settings or {}).get("engine", {}) or {}
        return bool(engine_cfg.get("fail_fast", True))

    # ------------------------------------------------------------------
    # Rastreabilidade
    # ------------------------------------------------------------------
    def _record(self, result: ActionResult) -> ActionResult:
        level = "error" if result.status == ActionStatus.FAILED else "info"
        self.ctx.log(
            action_id=result.action_id,
            level=level,
            message=result.summary,
            status=result.status.value,
            kind=result.kind.value,
        )
        manifest = self.ctx.manifest
        if manifest is None:
            return result
        ts = _now()
        if result.status == ActionStatus.FAILED:
            mf.action_failed(manifest, action_id=result.action_id, ts=ts, error=dict(result.error or {}))
        elif result.status == ActionStatus.SKIPPED:
            mf.action_skipped(manifest, action_id=result.action_id, ts=ts, reason=result.summary)
        else:
            mf.action_finished(
                manifest,
                action_id=result.action_id,
                ts=ts,
                result={
                    "status": result.status.value,
                    "summary": result.summary,
                    "details": result.details,
                },
            )
        return result

    def _skipped(self, action: Action, reason: str) -> ActionResult:
        return ActionResult(
            action_id=action.id,
            kind=action.kind,
            status=ActionStatus.SKIPPED,
            summary=reason,
        )

    def _failed(self, action: Action, error: ProvisionErrorPayload) -> ActionResult:
        return ActionResult(
            action_id=action.id,
            kind=action.kind,
            status=ActionStatus.FAILED,
            summary=error.message,
            error=error.to_dict(),
        )

    # ------------------------------------------------------------------
    # Execução por tipo
    # ------------------------------------------------------------------
    def _write(self, action: Action) -> ActionResult:
        art = action.artifact
        if art is None:
            raise ValueError(f"write action '{action.id}' has no artifact")
        details = {"path": art.path, "digest": art.digest}
        if not action.changed:
            return ActionResult(action.id, action.kind, ActionStatus.UNCHANGED, "content unchanged", details)
        try:
            self.runner.write_artifact(art)
        except Exception as e:
            return self._failed(action, artifact_write_error(action_id=action.id, path=art.path, exc=e))
        self.store.record_artifact(action.id, path=art.path, digest=art.digest)
        return ActionResult(action.id, action.kind, ActionStatus.SUCCESS, f"wrote {art.path}", details)

    def _service(self, action: Action) -> ActionResult:
        if action.kind == ActionKind.STOP_SERVICE:
            name = action.id[len(STOP_PREFIX):]
            op, call = "stop", self.runner.stop_service
        elif action.kind == ActionKind.RESTART_SERVICE:
            name = action.id
            op, call = "restart", self.runner.restart_service
        else:
            name = action.id
            op, call = "start", self.runner.start_service

        try:
            call(name)
        except Exception as e:
            return self._failed(action, service_operation_error(action_id=action.id, operation=op, exc=e))

        if action.kind == ActionKind.STOP_SERVICE:
            self.store.forget_service(name)
        else:
            self.store.record_service(name, triggers=action.triggers)
        return ActionResult(
            action.id,
            action.kind,
            ActionStatus.SUCCESS,
            f"{op} {name}",
            {"service": name, "triggers": dict(action.triggers)},
        )

    def _bootstrap(self, action: Action) -> ActionResult:
        template = action.bootstrap
        if template is None:
            raise ValueError(f"bootstrap action '{action.id}' has no template")
        config = self.ctx.config

        precondition = None
        if template.probe is not None:
            probe = template.probe
            precondition = lambda: probe(config)  # noqa: E731

        try:
            outcome = self.bootstrap_executor.run_once(
                action.id,
                precondition,
                lambda: template.effect(config, self.ctx),
            )
        except Exception as e:
            return self._failed(action, bootstrap_effect_error(action_id=action.id, exc=e))

        status = ActionStatus.UNCHANGED if outcome == BootstrapOutcome.ALREADY_COMPLETE else ActionStatus.SUCCESS
        return ActionResult(
            action.id,
            action.kind,
            status,
            f"bootstrap {outcome.value}",
            {"outcome": outcome.value},
        )

    def _execute(self, action: Action) -> ActionResult:
        if action.kind == ActionKind.WRITE_ARTIFACT:
            return self._write(action)
        if action.kind == ActionKind.BOOTSTRAP:
            return self._bootstrap(action)
        return self._service(action)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------
    def run(self) -> ExecutionResult:
        results: Dict[str, ActionResult] = {}
        halted = False

        for action in self.plan.actions:
            if halted:
                results[action.id] = self._record(self._skipped(action, "skipped by fail-fast"))
                continue

            blocked = [
                p for p in action.predecessors
                if p in results and results[p].status in (ActionStatus.FAILED, ActionStatus.SKIPPED)
            ]
            if blocked:
                results[action.id] = self._record(
                    self._skipped(action, f"skipped due to failed dependency: {', '.join(blocked)}")
                )
                continue

            if self.ctx.manifest is not None:
                mf.action_started(self.ctx.manifest, action_id=action.id, kind=action.kind.value, ts=_now())

            try:
                result = self._execute(action)
            except Exception as e:
                result = self._failed(action, engine_execution_error(action_id=action.id, exc=e))

            results[action.id] = self._record(result)

            if result.status == ActionStatus.FAILED and self._fail_fast():
                halted = True

        return ExecutionResult(actions=results)


def execute_plan(
    plan: ActivationPlan,
    *,
    ctx: ProvisionContext,
    runner: ActionRunner,
    store: StateStore,
) -> ExecutionResult:
    """Atalho funcional: `Engine(...).run()`."""
    return Engine(plan=plan, ctx=ctx, runner=runner, store=store).run()


__all__ = ["Engine", "ExecutionResult", "execute_plan", "STOP_PREFIX"]