# src/atlas_provision/core/state/store.py
"""
Persistência canônica do estado de provisionamento (v1).

O estado persistido é o único recurso compartilhado entre passes e
processos. Layout (relativo ao `state_dir`):

    bootstrap/<action_id>.json   marcador de conclusão de um bootstrap
    materialized.json            artifacts escritos (path + digest) e, por
                                 serviço, os digests de trigger com que foi
                                 (re)iniciado pela última vez
    manifest.json                Manifest do último pass

Decisões (v1):
    - Formato: JSON determinístico (sort_keys, indent=2)
    - Toda escrita é atômica (arquivo temporário no mesmo diretório + os.replace)
    - Marcadores de bootstrap nunca são removidos implicitamente

Limites explícitos:
    - Não implementa locking (ver `lock.py`)
    - Não decide quando marcar; apenas persiste
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union


def atomic_write(path: Union[str, Path], data: bytes, *, mode: Optional[int] = None) -> None:
    """Escreve `data` em `path` de forma atômica (temp + fsync + rename)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Optional[Path] = None
    try:
        with tempfile.NamedTemporaryFile("wb", dir=str(path.parent), delete=False) as f:
            tmp_path = Path(f.name)
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(str(tmp_path), str(path))
        tmp_path = None
    finally:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()


def _dump(data: Dict[str, Any]) -> bytes:
    return json.dumps(data, ensure_ascii=False, sort_keys=True, indent=2).encode("utf-8")


@dataclass
class MaterializedState:
    """Artifacts escritos e digests de trigger por serviço ativo."""

    artifacts: Dict[str, Dict[str, str]] = field(default_factory=dict)
    services: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def artifact_digest(self, artifact_id: str) -> Optional[str]:
        entry = self.artifacts.get(artifact_id)
        return entry.get("digest") if entry else None

    def artifact_path(self, artifact_id: str) -> Optional[str]:
        entry = self.artifacts.get(artifact_id)
        return entry.get("path") if entry else None

    def service_triggers(self, service_id: str) -> Optional[Dict[str, str]]:
        entry = self.services.get(service_id)
        if entry is None:
            return None
        return dict(entry.get("triggers", {}) or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "artifacts": {k: dict(v) for k, v in self.artifacts.items()},
            "services": {k: dict(v) for k, v in self.services.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MaterializedState":
        return cls(
            artifacts={k: dict(v) for k, v in (data.get("artifacts", {}) or {}).items()},
            services={k: dict(v) for k, v in (data.get("services", {}) or {}).items()},
        )


class StateStore:
    """Store canônica (v1) do estado persistido de um alvo."""

    def __init__(self, *, state_dir: Union[str, Path]):
        self.state_dir = Path(state_dir)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------
    def marker_path(self, action_id: str) -> Path:
        if not action_id or "/" in action_id or action_id in {".", ".."}:
            raise ValueError(f"invalid bootstrap action id: {action_id!r}")
        return self.state_dir / "bootstrap" / f"{action_id}.json"

    def materialized_path(self) -> Path:
        return self.state_dir / "materialized.json"

    def manifest_path(self) -> Path:
        return self.state_dir / "manifest.json"

    # ------------------------------------------------------------------
    # BootstrapState
    # ------------------------------------------------------------------
    def is_complete(self, action_id: str) -> bool:
        return self.marker_path(action_id).exists()

    def read_marker(self, action_id: str) -> Optional[Dict[str, Any]]:
        path = self.marker_path(action_id)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def mark_complete(self, action_id: str, *, via: str) -> Dict[str, Any]:
        marker = {
            "action_id": action_id,
            "completed_at": datetime.now(timezone.utc).isoformat(),
            "via": via,
        }
        atomic_write(self.marker_path(action_id), _dump(marker), mode=0o600)
        return marker

    # ------------------------------------------------------------------
    # MaterializedState
    # ------------------------------------------------------------------
    def load_materialized(self) -> MaterializedState:
        path = self.materialized_path()
        if not path.exists():
            return MaterializedState()
        return MaterializedState.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def save_materialized(self, state: MaterializedState) -> None:
        atomic_write(self.materialized_path(), _dump(state.to_dict()))

    def record_artifact(self, artifact_id: str, *, path: str, digest: str) -> None:
        state = self.load_materialized()
        state.artifacts[artifact_id] = {"path": path, "digest": digest}
        self.save_materialized(state)

    def record_service(self, service_id: str, *, triggers: Dict[str, str]) -> None:
        state = self.load_materialized()
        state.services[service_id] = {"triggers": dict(triggers)}
        self.save_materialized(state)

    def forget_service(self, service_id: str) -> None:
        state = self.load_materialized()
        if state.services.pop(service_id, None) is not None:
            self.save_materialized(state)


__all__ = ["StateStore", "MaterializedState", "atomic_write"]
