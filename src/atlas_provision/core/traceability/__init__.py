# src/atlas_provision/core/traceability/__init__.py
"""
Pacote de rastreabilidade do Atlas Provision — Manifest v1.

API pública exposta:
    - ProvisionManifest → estrutura canônica do Manifest
    - create_manifest   → criação explícita do Manifest
    - add_event         → registro explícito de eventos no Event Log
    - action_started / action_finished / action_failed / action_skipped
    - run_finished      → status final do pass
    - save_manifest / load_manifest → persistência JSON (round-trip)

Invariantes:
    - O Manifest inicia com `actions` e `events` vazios
    - Eventos nunca são reordenados automaticamente
"""

from .manifest import (
    ProvisionManifest,
    action_failed,
    action_finished,
    action_skipped,
    action_started,
    add_event,
    create_manifest,
    load_manifest,
    run_finished,
    save_manifest,
)

__all__ = [
    "ProvisionManifest",
    "action_failed",
    "action_finished",
    "action_skipped",
    "action_started",
    "add_event",
    "create_manifest",
    "load_manifest",
    "run_finished",
    "save_manifest",
]
