# src/atlas_provision/core/traceability/manifest.py
"""
Manifest v1 — rastreabilidade de passes de provisionamento.

Este módulo define a estrutura e as operações canônicas do Manifest,
o registro auditável de um pass do Atlas Provision.

O Manifest consolida, de forma determinística:
    - metadados do pass (run_id, started_at, versão)
    - hash da configuração resolvida e o plano ordenado
    - estado incremental de cada Action
    - Event Log ordenado de eventos explícitos (inclui warnings)

Princípios fundamentais:
    - Nenhum evento é emitido implicitamente
    - Toda mutação ocorre por chamadas explícitas da API
    - A ordem do Event Log reflete a ordem real de execução
    - O Manifest é serializável e reconstruível (round-trip)

Decisões arquiteturais:
    - UTC é o timezone canônico para todos os timestamps
    - O formato de persistência é JSON determinístico, escrito atomicamente

Limites explícitos:
    - Não executa o plano
    - Não decide políticas de execução (fail-fast, skip)
    - Não realiza migração de versões de schema
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from atlas_provision.core.state.store import atomic_write


def _ensure_tzaware_utc(dt: datetime) -> datetime:
    """
    Normaliza um timestamp para timezone-aware em UTC.

    Timestamps timezone-naive são assumidos como UTC; os demais são
    convertidos.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: datetime) -> str:
    return _ensure_tzaware_utc(dt).isoformat()


def _ms_between(start: datetime, end: datetime) -> int:
    s = _ensure_tzaware_utc(start)
    e = _ensure_tzaware_utc(end)
    return max(0, int((e - s).total_seconds() * 1000))


@dataclass
class ProvisionManifest:
    """
    Manifest v1 — registro de um pass de provisionamento.

    Campos principais:
        - run: metadados do pass (run_id, started_at, version, status)
        - inputs: config_hash, flags e plano ordenado
        - actions: estado incremental por action_id
        - events: Event Log ordenado

    Invariantes:
        - `actions` é sempre um dicionário indexado por action_id
        - `events` é sempre uma lista ordenada
        - A estrutura completa é serializável
    """

    run: Dict[str, Any]
    inputs: Dict[str, Any]
    actions: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run": dict(self.run),
            "inputs": dict(self.inputs),
            "actions": {k: dict(v) for k, v in self.actions.items()},
            "events": [dict(e) for e in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProvisionManifest":
        return cls(
            run=dict(data.get("run", {})),
            inputs=dict(data.get("inputs", {})),
            actions={k: dict(v) for k, v in (data.get("actions", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
        )


def create_manifest(
    *,
    run_id: str,
    started_at: datetime,
    version: str,
    config_hash: str,
    flags: Optional[Dict[str, Any]] = None,
    plan: Optional[List[Dict[str, Any]]] = None,
) -> ProvisionManifest:
    """
    Cria o Manifest inicial de um pass.

    ⚠️ Importante: esta função **não emite eventos implicitamente**.
    O Event Log inicia vazio.

    Args:
        run_id (str): Identificador único do pass.
        started_at (datetime): Timestamp de início.
        version (str): Versão do Atlas Provision.
        config_hash (str): Hash da configuração resolvida.
        flags (Optional[Dict[str, Any]]): Flags externas do pass.
        plan (Optional[List[Dict[str, Any]]]): Plano ordenado serializado.

    Returns:
        ProvisionManifest: Manifest inicializado.
    """
    started_at = _ensure_tzaware_utc(started_at)

    return ProvisionManifest(
        run={
            "run_id": run_id,
            "started_at": _iso(started_at),
            "version": version,
            "status": "running",
        },
        inputs={
            "config_hash": config_hash,
            "flags": dict(flags or {}),
            "plan": list(plan or []),
        },
        actions={},
        events=[],
    )


def add_event(
    manifest: ProvisionManifest,
    *,
    event_type: str,
    ts: datetime,
    action_id: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Adiciona um evento explícito ao Event Log do Manifest.

    Invariantes:
        - Cada chamada adiciona exatamente um evento
        - Eventos não são reordenados ou deduplicados
    """
    ev: Dict[str, Any] = {"event_type": event_type, "timestamp": _iso(ts)}
    if action_id is not None:
        ev["action_id"] = action_id
    if payload is not None:
        ev["payload"] = payload
    manifest.events.append(ev)


def action_started(manifest: ProvisionManifest, *, action_id: str, kind: str, ts: datetime) -> None:
    manifest.actions.setdefault(action_id, {})
    manifest.actions[action_id].update(
        {
            "action_id": action_id,
            "kind": kind,
            "status": "running",
            "started_at": _iso(ts),
        }
    )
    add_event(manifest, event_type="action_started", ts=ts, action_id=action_id, payload={"kind": kind})


def action_finished(
    manifest: ProvisionManifest,
    *,
    action_id: str,
    ts: datetime,
    result: Dict[str, Any],
) -> None:
    """
    Registra a conclusão (SUCCESS ou UNCHANGED) de uma Action.

    A duração é calculada a partir de `started_at` quando disponível.
    """
    a = manifest.actions.setdefault(action_id, {"action_id": action_id})
    started_iso = a.get("started_at")
    started_dt = datetime.fromisoformat(started_iso) if started_iso else ts

    status = result.get("status", "success")
    a.update(
        {
            "status": status,
            "finished_at": _iso(ts),
            "duration_ms": _ms_between(started_dt, ts),
            "summary": result.get("summary"),
            "details": result.get("details", {}) or {},
        }
    )
    add_event(
        manifest,
        event_type="action_finished",
        ts=ts,
        action_id=action_id,
        payload={"status": status, "duration_ms": a["duration_ms"]},
    )


def action_failed(manifest: ProvisionManifest, *, action_id: str, ts: datetime, error: Dict[str, Any]) -> None:
    a = manifest.actions.setdefault(action_id, {"action_id": action_id})
    a.update({"status": "failed", "finished_at": _iso(ts), "error": error})
    add_event(manifest, event_type="action_failed", ts=ts, action_id=action_id, payload={"error": error})


def action_skipped(manifest: ProvisionManifest, *, action_id: str, ts: datetime, reason: str) -> None:
    a = manifest.actions.setdefault(action_id, {"action_id": action_id})
    a.update({"status": "skipped", "finished_at": _iso(ts), "summary": reason})
    add_event(manifest, event_type="action_skipped", ts=ts, action_id=action_id, payload={"reason": reason})


def run_finished(manifest: ProvisionManifest, *, ts: datetime, status: str) -> None:
    manifest.run["status"] = status
    manifest.run["finished_at"] = _iso(ts)
    add_event(manifest, event_type="run_finished", ts=ts, payload={"status": status})


def save_manifest(manifest: ProvisionManifest, path: Path) -> None:
    """
    Persiste o Manifest em JSON determinístico (sort_keys, indent=2).

    Raises:
        OSError: Em caso de falha de escrita.
        TypeError: Se o conteúdo não for serializável em JSON.
    """
    data = json.dumps(manifest.to_dict(), ensure_ascii=False, indent=2, sort_keys=True)
    atomic_write(Path(path), data.encode("utf-8"))


def load_manifest(path: Path) -> ProvisionManifest:
    """Carrega um Manifest persistido (round-trip de `save_manifest`)."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return ProvisionManifest.from_dict(data)
