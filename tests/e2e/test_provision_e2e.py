# tests/e2e/test_provision_e2e.py
"""
Testes de ponta a ponta de um pass completo de provisionamento.

Cenário:
    - módulos `web`, `database`, `webmail` e `containers` declarados
      de forma independente
    - definições do usuário habilitam o webmail
    - LocalRunner escreve sob `tmp_path/root`; serviços são gravados
      por um RecordingServiceManager

Os testes asseguram que:
- o primeiro pass materializa arquivos, inicia serviços e executa bootstraps
- o segundo pass, sem mudanças, é idempotente
- mudança de configuração reinicia apenas o serviço afetado
- desabilitar um módulo para seus serviços
- falhas salvam o Manifest e o pass seguinte recupera
- erros de configuração abortam antes de qualquer efeito
"""

import pytest

try:
    from atlas_provision import evaluate, provision
    from atlas_provision.core.config.loader import ProvisionSettings, settings_from_config
    from atlas_provision.core.modules import Module
    from atlas_provision.core.plan.types import ArtifactTemplate
    from atlas_provision.core.options import ConflictError, UndefinedSlotError
    from atlas_provision.core.plan.runner import LocalRunner
    from atlas_provision.core.plan.types import ActionKind, ActionStatus
    from atlas_provision.core.traceability import load_manifest
    from atlas_provision.core.validation import ValidationError
    from tests.fixtures.modules.containers import containers_module
    from tests.fixtures.modules.fakes import FakeDatabase, RecordingServiceManager
    from tests.fixtures.modules.shared import database_module, web_module
    from tests.fixtures.modules.webmail import CONFIG_PATH, webmail_module
except Exception as e:  # noqa: BLE001
    provision = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing provisioning modules. Import error: {_IMPORT_ERR}")


SITE = {"webmail": {"enable": True, "host_name": "webmail.example.com"}}


class Target:
    """Alvo de teste: raiz de arquivos, estado, banco e serviços."""

    def __init__(self, tmp_path, *, failing=frozenset()):
        self.root = tmp_path / "root"
        self.state_dir = tmp_path / "state"
        self.db = FakeDatabase()
        self.services = RecordingServiceManager(failing=failing)

    def modules(self):
        return [
            web_module(),
            database_module(),
            webmail_module(database=self.db, state_root=self.root),
            containers_module(),
        ]

    def run(self, *definitions, flags=None, fail_fast=True):
        return provision(
            self.modules(),
            settings=ProvisionSettings(state_dir=self.state_dir, fail_fast=fail_fast, flags=dict(flags or {})),
            runner=LocalRunner(root=self.root, services=self.services),
            definitions=definitions,
        )

    def file(self, path):
        return self.root / path.lstrip("/")


def _statuses(result):
    return {aid: r.status for aid, r in result.execution.actions.items()}


def test_first_pass_materializes_everything(tmp_path):
    _require_imports()
    t = Target(tmp_path)
    result = t.run(SITE)

    assert result.ok
    assert set(result.plan.ids) == {
        "web-vhosts",
        "webmail-config",
        "web",
        "postgresql",
        "phpfpm-webmail",
        "webmail-schema",
        "webmail-des-key",
    }
    ids = result.plan.ids
    assert ids.index("postgresql") < ids.index("webmail-schema") < ids.index("phpfpm-webmail")
    assert ids.index("webmail-des-key") < ids.index("phpfpm-webmail")

    config = t.file(CONFIG_PATH).read_text()
    assert "$config['max_message_size'] = '23.4M';" in config
    assert "$config['plugins'] = ['archive'];" in config
    assert "support_url'] = 'https://webmail.example.com/'" in config
    assert '"webmail"' in t.file("/etc/web/vhosts.json").read_text()

    assert t.services.verbs_for("phpfpm-webmail") == ["start"]
    assert t.db.init_calls == 1
    assert t.db.sessions_truncated == 1
    assert t.file("/var/lib/webmail/des_key").exists()
    assert result.evaluation.resolved["database.ensure_databases"] == ["webmail"]


def test_second_pass_is_a_no_op(tmp_path):
    _require_imports()
    t = Target(tmp_path)
    t.run(SITE)
    key = t.file("/var/lib/webmail/des_key").read_text()

    result = t.run(SITE)
    statuses = _statuses(result)

    assert statuses["webmail-config"] == ActionStatus.UNCHANGED
    assert statuses["web-vhosts"] == ActionStatus.UNCHANGED
    assert statuses["webmail-schema"] == ActionStatus.UNCHANGED
    assert statuses["webmail-des-key"] == ActionStatus.UNCHANGED
    assert "restart" not in t.services.verbs_for("phpfpm-webmail")
    assert t.db.init_calls == 1
    assert t.db.sessions_truncated == 1
    assert t.file("/var/lib/webmail/des_key").read_text() == key


def test_config_change_restarts_only_affected_service(tmp_path):
    _require_imports()
    t = Target(tmp_path)
    t.run(SITE)

    result = t.run(SITE, {"webmail": {"plugins": ["zipdownload"]}})

    assert result.plan.get("phpfpm-webmail").kind == ActionKind.RESTART_SERVICE
    assert result.plan.get("web").kind == ActionKind.START_SERVICE
    assert result.evaluation.resolved["webmail.plugins"] == ["zipdownload"]
    assert "['zipdownload']" in t.file(CONFIG_PATH).read_text()
    assert t.services.verbs_for("phpfpm-webmail") == ["start", "restart"]


def test_disabling_module_stops_its_services(tmp_path):
    _require_imports()
    t = Target(tmp_path)
    t.run(SITE)

    result = t.run({"webmail": {"enable": False}})

    assert result.ok
    assert {"stop:phpfpm-webmail", "stop:postgresql", "stop:web"} <= set(result.plan.ids)
    assert "webmail-schema" not in result.plan.ids
    assert t.services.verbs_for("phpfpm-webmail") == ["start", "stop"]
    assert result.ctx.config["database.enable"] is False


def test_failure_saves_manifest_and_next_pass_recovers(tmp_path):
    _require_imports()
    t = Target(tmp_path, failing={"postgresql"})
    result = t.run(SITE)
    statuses = _statuses(result)

    assert not result.ok
    assert statuses["postgresql"] == ActionStatus.FAILED
    assert statuses["webmail-schema"] == ActionStatus.SKIPPED
    assert statuses["phpfpm-webmail"] == ActionStatus.SKIPPED
    assert t.db.init_calls == 0

    manifest = load_manifest(t.state_dir / "manifest.json")
    assert manifest.run["status"] == "failed"
    assert manifest.actions["postgresql"]["error"]["type"] == "SERVICE_OPERATION_ERROR"

    t.services.failing.clear()
    retry = t.run(SITE)
    assert retry.ok
    assert t.db.init_calls == 1
    assert load_manifest(t.state_dir / "manifest.json").run["status"] == "success"


def test_assertion_failure_aborts_before_any_effect(tmp_path):
    _require_imports()
    t = Target(tmp_path)
    with pytest.raises(ValidationError) as exc:
        t.run({"webmail": {"enable": True, "host_name": "h", "database": {"username": "roundcube"}}})

    assert [f.id for f in exc.value.failures] == ["webmail.db-owner"]
    assert not t.state_dir.exists()
    assert not t.root.exists()
    assert t.services.calls == []


def test_undefined_slot_fails_at_planning(tmp_path):
    _require_imports()
    t = Target(tmp_path)
    with pytest.raises(UndefinedSlotError):
        t.run({"webmail": {"enable": True}})
    assert t.services.calls == []
    assert not t.root.exists()


def test_conflicting_definitions_name_both_sources(tmp_path):
    _require_imports()
    site = tmp_path / "site.yaml"
    site.write_text("webmail:\n  host_name: a.example.com\n", encoding="utf-8")

    t = Target(tmp_path)
    with pytest.raises(ConflictError) as exc:
        t.run(str(site), {"webmail": {"host_name": "b.example.com"}})
    assert exc.value.sources == ["definitions:site.yaml", "definitions:<inline>"]


def test_remote_database_warning_is_recorded(tmp_path):
    _require_imports()
    t = Target(tmp_path)
    remote = {
        "webmail": {
            "enable": True,
            "host_name": "webmail.example.com",
            "database": {
                "host": "db.internal",
                "password": "secret",
                "password_file": "/run/secrets/webmail-db",
            },
        }
    }
    result = t.run(remote)

    assert result.ok
    assert "postgresql" not in result.plan.ids
    assert len(result.ctx.warnings["webmail"]) == 1
    warning_events = [e for e in result.manifest.events if e["event_type"] == "warning"]
    assert warning_events[0]["payload"]["source"] == "webmail"
    assert "file('/run/secrets/webmail-db')" in t.file(CONFIG_PATH).read_text()


def test_containers_network_gating(tmp_path):
    """
    `containers-net` entra no plano apenas sem a flag `inside_container`
    e sempre antes de `containers`.
    """
    _require_imports()
    t = Target(tmp_path)
    defs = [{"containers": {"enable": True, "unpriv": True}}]

    plan = evaluate(t.modules(), definitions=defs).plan()
    assert plan.ids.index("containers-net") < plan.ids.index("containers")
    assert plan.get("containers-usernet").artifact.content == b"# managed"

    inside = evaluate(t.modules(), flags={"inside_container": True}, definitions=defs).plan()
    assert "containers-net" not in inside.ids
    assert "containers" in inside.ids


def test_module_order_does_not_change_resolution(tmp_path):
    _require_imports()
    t = Target(tmp_path)
    forward = evaluate(t.modules(), definitions=[SITE])
    backward = evaluate(list(reversed(t.modules())), definitions=[SITE])
    assert forward.config_hash == backward.config_hash


def test_target_root_setting_drives_default_runner(tmp_path):
    """
    Sem runner explícito, os artifacts são escritos sob `target.root`.
    """
    _require_imports()
    settings = settings_from_config(
        {
            "state": {"dir": str(tmp_path / "state")},
            "target": {"root": str(tmp_path / "target")},
        }
    )
    motd = Module(
        id="motd",
        artifacts=[ArtifactTemplate("motd", render=lambda c: ("/etc/motd", "welcome\n"))],
    )

    result = provision([motd], settings=settings)

    assert result.ok
    assert (tmp_path / "target" / "etc" / "motd").read_text() == "welcome\n"
