# tests/conftest.py
"""
Fixtures compartilhados para testes do Atlas Provision.

Este módulo define fixtures reutilizáveis que fornecem:
- settings mínimos e determinísticos (YAML como string)
- registry com slots de exemplo
- contexto de execução controlado (ProvisionContext)
- StateStore isolado em `tmp_path`
- runner em memória que registra escritas e operações de serviço

Decisões arquiteturais:
    - Fixtures são mantidas simples e explícitas
    - Todo acesso a filesystem ocorre sob `tmp_path`
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas

Invariantes:
    - Nenhuma fixture executa um pass real
    - Nenhuma fixture contém lógica de domínio
    - Todas as fixtures são seguras para execução em paralelo

Limites explícitos:
    - Não substituir testes de integração (ver `tests/e2e`)
"""

import pytest


# =====================================================
# Settings fixtures
# =====================================================

@pytest.fixture
def settings_defaults_yaml() -> str:
    """
    YAML de settings padrão (defaults), semelhante ao uso real.

    Usado por:
        - Testes do loader de settings
        - Testes de deep-merge (defaults + local)
    """
    return """\
engine:
  fail_fast: true
state:
  dir: /var/lib/atlas-provision
target:
  root: /
flags:
  inside_container: false
"""


@pytest.fixture
def settings_local_yaml() -> str:
    """YAML de overrides locais: só as chaves alteradas."""
    return """\
engine:
  fail_fast: false
flags:
  inside_container: true
"""


# =====================================================
# Options fixtures
# =====================================================

@pytest.fixture
def sample_registry():
    """
    Registry congelável com slots de todos os tipos usados nos testes.

    Slots:
        - database.host (STR, default "localhost")
        - database.port (INT, default 5432)
        - webmail.enable (BOOL, default False)
        - plugins (LIST[str], default [])
        - packages (SET[str], default [])
        - vhosts (ATTRS, default {})
        - extra (LINES, default "")
        - host_name (STR, sem default)
    """
    from atlas_provision.core.options import OptionRegistry, OptionType

    r = OptionRegistry()
    r.declare("database.host", OptionType.STR, "localhost", "Host of the database server")
    r.declare("database.port", OptionType.INT, 5432)
    r.declare("webmail.enable", OptionType.BOOL, False)
    r.declare("plugins", OptionType.LIST, [], element=OptionType.STR)
    r.declare("packages", OptionType.SET, [], element=OptionType.STR)
    r.declare("vhosts", OptionType.ATTRS, {})
    r.declare("extra", OptionType.LINES, "")
    r.declare("host_name", OptionType.STR)
    return r


# =====================================================
# Execution fixtures
# =====================================================

@pytest.fixture
def state_store(tmp_path):
    from atlas_provision.core.state.store import StateStore

    return StateStore(state_dir=tmp_path / "state")


@pytest.fixture
def dummy_ctx():
    """
    ProvisionContext determinístico com config vazia e fail-fast ligado.

    `run_id` é fixo; sem Manifest anexado.
    """
    from atlas_provision.core.run_context import ProvisionContext

    return ProvisionContext.create(
        run_id="run-test-001",
        config={},
        settings={"engine": {"fail_fast": True}},
    )


@pytest.fixture
def MemoryRunner():
    """
    Fixture factory: runner em memória (duck-typed ActionRunner).

    Registra cada chamada em `calls` na ordem; ids em `failing` levantam
    RuntimeError (artifact id para escrita, nome do serviço para serviços).
    """

    class _MemoryRunner:
        def __init__(self, failing=()):
            self.calls = []
            self.files = {}
            self.failing = set(failing)

        def _maybe_fail(self, key):
            if key in self.failing:
                raise RuntimeError(f"boom: {key}")

        def write_artifact(self, artifact):
            self.calls.append(("write", artifact.id))
            self._maybe_fail(artifact.id)
            self.files[artifact.path] = artifact.content

        def start_service(self, name):
            self.calls.append(("start", name))
            self._maybe_fail(name)

        def restart_service(self, name):
            self.calls.append(("restart", name))
            self._maybe_fail(name)

        def stop_service(self, name):
            self.calls.append(("stop", name))
            self._maybe_fail(name)

    return _MemoryRunner
