# src/atlas_provision/core/run_context.py
"""
ProvisionContext — Contexto canônico de um pass de provisionamento.

Este módulo define o **ProvisionContext**, a estrutura compartilhada pelo
executor do plano e pelos effects de bootstrap durante um pass.

O ProvisionContext é o **único meio permitido** de:
- acesso à configuração resolvida e às flags externas do pass
- registro de logs estruturados de execução (event log em memória)
- coleta de warnings não fatais associados a uma origem
- acesso ao Manifest do pass, quando houver

Princípios fundamentais:
- Isolamento por execução (cada pass possui seu próprio contexto)
- Nenhum logger global: todo log é um evento estruturado e rastreável
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional


@dataclass
class ProvisionContext:
    """
    Contexto de execução compartilhado de um pass.

    Campos canônicos:
    - run_id: identificador único do pass
    - created_at: timestamp UTC de criação do contexto
    - config: configuração resolvida (ResolvedConfig)
    - flags: flags externas do pass
    - settings: settings efetivos do engine (dict)
    - manifest: ProvisionManifest do pass (opcional)
    - warnings: warnings por origem (módulo ou action)
    - events: log estruturado de eventos
    """

    run_id: str
    created_at: str
    config: Mapping[str, Any]
    flags: Dict[str, Any] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)
    manifest: Any = None

    warnings: Dict[str, List[str]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        *,
        run_id: str,
        config: Mapping[str, Any],
        flags: Optional[Dict[str, Any]] = None,
        settings: Optional[Dict[str, Any]] = None,
        manifest: Any = None,
    ) -> "ProvisionContext":
        return cls(
            run_id=run_id,
            created_at=datetime.now(timezone.utc).isoformat(),
            config=config,
            flags=dict(flags or {}),
            settings=dict(settings or {}),
            manifest=manifest,
        )

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, action_id: Optional[str], level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "action_id": action_id,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, source: str, message: str) -> None:
        if source not in self.warnings:
            self.warnings[source] = []
        self.warnings[source].append(message)

    def events_for(self, action_id: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e.get("action_id") == action_id]
