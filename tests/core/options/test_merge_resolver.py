# tests/core/options/test_merge_resolver.py
"""
Testes do Merge Resolver.

Os testes asseguram que:
- a maior prioridade presente vence, independente da ordem de coleta
- escalares divergentes na mesma prioridade falham nomeando as fontes
- tipos estruturais combinam todas as sobreviventes (LIST, SET, LINES, ATTRS)
- condições são avaliadas sobre uma visão lazy da configuração
- recursão via condições é erro explícito
- slots sem valor só falham quando consumidos
"""

import pytest

try:
    from atlas_provision.core.options import (
        ConflictError,
        ContributionCollector,
        DuplicateKeyError,
        OptionRegistry,
        OptionType,
        Priority,
        RecursiveResolutionError,
        UndefinedSlotError,
        UnknownSlotError,
        resolve,
    )
    from atlas_provision.core.options.conditions import flag, option
except Exception as e:  # noqa: BLE001
    resolve = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing resolver module. Implement:\n"
            "- src/atlas_provision/core/options/resolver.py (resolve, ResolvedConfig)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _resolve(registry, proposals, flags=None):
    c = ContributionCollector(registry)
    for slot_id, value, priority, source in proposals:
        c.propose(slot_id, value, priority, source=source)
    return resolve(registry, c.contributions(), flags)


# -----------------------------------------------------
# Scalars
# -----------------------------------------------------

def test_default_used_without_contributions(sample_registry):
    _require_imports()
    cfg = resolve(sample_registry, [])
    assert cfg["database.host"] == "localhost"
    assert cfg["database.port"] == 5432
    assert cfg.provenance("database.host") == ["<default>"]


def test_explicit_beats_default_in_any_order(sample_registry):
    """
    `default("localhost")` de um módulo e `"db.internal"` explícito do
    usuário: o explícito vence nas duas ordens de coleta.
    """
    _require_imports()
    a = ("database.host", "localhost", Priority.DEFAULT, "webmail")
    b = ("database.host", "db.internal", Priority.EXPLICIT, "site")

    assert _resolve(sample_registry, [a, b])["database.host"] == "db.internal"
    assert _resolve(sample_registry, [b, a])["database.host"] == "db.internal"


def test_forced_beats_explicit(sample_registry):
    _require_imports()
    cfg = _resolve(
        sample_registry,
        [
            ("database.port", 6432, Priority.FORCED, "ops"),
            ("database.port", 5433, Priority.EXPLICIT, "site"),
        ],
    )
    assert cfg["database.port"] == 6432
    assert cfg.provenance("database.port") == ["ops"]


def test_identical_scalars_at_same_priority_are_accepted(sample_registry):
    _require_imports()
    cfg = _resolve(
        sample_registry,
        [
            ("webmail.enable", True, Priority.EXPLICIT, "a"),
            ("webmail.enable", True, Priority.EXPLICIT, "b"),
        ],
    )
    assert cfg["webmail.enable"] is True
    assert cfg.provenance("webmail.enable") == ["a", "b"]


def test_divergent_scalars_raise_conflict_naming_sources(sample_registry):
    _require_imports()
    with pytest.raises(ConflictError) as exc:
        _resolve(
            sample_registry,
            [
                ("database.host", "a.internal", Priority.EXPLICIT, "site-a"),
                ("database.host", "b.internal", Priority.EXPLICIT, "site-b"),
            ],
        )
    assert exc.value.slot_id == "database.host"
    assert exc.value.sources == ["site-a", "site-b"]
    assert "site-a" in str(exc.value) and "site-b" in str(exc.value)


def test_lower_priority_conflict_is_shadowed(sample_registry):
    _require_imports()
    cfg = _resolve(
        sample_registry,
        [
            ("database.host", "a", Priority.DEFAULT, "m1"),
            ("database.host", "b", Priority.DEFAULT, "m2"),
            ("database.host", "c", Priority.EXPLICIT, "site"),
        ],
    )
    assert cfg["database.host"] == "c"


# -----------------------------------------------------
# Structural types
# -----------------------------------------------------

def test_list_concatenates_in_collection_order(sample_registry):
    _require_imports()
    cfg = _resolve(
        sample_registry,
        [
            ("plugins", ["archive"], Priority.EXPLICIT, "webmail"),
            ("plugins", ["zipdownload"], Priority.EXPLICIT, "site"),
        ],
    )
    assert cfg["plugins"] == ["archive", "zipdownload"]


def test_identical_list_contributions_are_both_kept(sample_registry):
    _require_imports()
    cfg = _resolve(
        sample_registry,
        [
            ("plugins", ["archive"], Priority.EXPLICIT, "webmail"),
            ("plugins", ["archive"], Priority.EXPLICIT, "site"),
        ],
    )
    assert cfg["plugins"] == ["archive", "archive"]


def test_list_default_priority_is_dropped_when_explicit_present(sample_registry):
    _require_imports()
    cfg = _resolve(
        sample_registry,
        [
            ("plugins", ["archive"], Priority.DEFAULT, "webmail"),
            ("plugins", ["zipdownload"], Priority.EXPLICIT, "site"),
        ],
    )
    assert cfg["plugins"] == ["zipdownload"]


def test_set_is_union_without_duplicates(sample_registry):
    _require_imports()
    cfg = _resolve(
        sample_registry,
        [
            ("packages", ["php", "lxc"], Priority.EXPLICIT, "a"),
            ("packages", ["lxc", "apache"], Priority.EXPLICIT, "b"),
        ],
    )
    assert cfg["packages"] == ["apache", "lxc", "php"]


def test_lines_join_with_newline(sample_registry):
    _require_imports()
    cfg = _resolve(
        sample_registry,
        [
            ("extra", "a = 1", Priority.EXPLICIT, "m1"),
            ("extra", "b = 2", Priority.EXPLICIT, "m2"),
        ],
    )
    assert cfg["extra"] == "a = 1\nb = 2"


def test_attrs_union_of_disjoint_keys(sample_registry):
    _require_imports()
    cfg = _resolve(
        sample_registry,
        [
            ("vhosts", {"webmail": {"root": "/srv/webmail"}}, Priority.EXPLICIT, "webmail"),
            ("vhosts", {"wiki": {"root": "/srv/wiki"}}, Priority.EXPLICIT, "wiki"),
        ],
    )
    assert cfg["vhosts"] == {
        "webmail": {"root": "/srv/webmail"},
        "wiki": {"root": "/srv/wiki"},
    }


def test_attrs_divergent_key_raises_duplicate_key(sample_registry):
    _require_imports()
    with pytest.raises(DuplicateKeyError) as exc:
        _resolve(
            sample_registry,
            [
                ("vhosts", {"webmail": {"root": "/a"}}, Priority.EXPLICIT, "m1"),
                ("vhosts", {"webmail": {"root": "/b"}}, Priority.EXPLICIT, "m2"),
            ],
        )
    assert exc.value.slot_id == "vhosts"
    assert exc.value.key_path == "webmail.root"


# -----------------------------------------------------
# Conditions and laziness
# -----------------------------------------------------

def test_inactive_condition_falls_back_to_default(sample_registry):
    _require_imports()
    c = ContributionCollector(sample_registry)
    c.propose("packages", ["roundcube"], condition=option("webmail.enable"), source="webmail")
    cfg = resolve(sample_registry, c.contributions())
    assert cfg["packages"] == []


def test_condition_reads_other_slot_lazily(sample_registry):
    """
    Uma condição pode depender de um slot coletado depois dela.

    Decisões arquiteturais:
        - A visão de configuração resolve o slot sob demanda
    """
    _require_imports()
    c = ContributionCollector(sample_registry)
    c.propose("packages", ["roundcube"], condition=option("webmail.enable"), source="webmail")
    c.propose("webmail.enable", True, source="site")
    cfg = resolve(sample_registry, c.contributions())
    assert cfg["packages"] == ["roundcube"]


def test_flags_are_visible_to_conditions(sample_registry):
    _require_imports()
    c = ContributionCollector(sample_registry)
    c.propose("extra", "lxc.net = none", condition=flag("unpriv"), source="containers")
    assert resolve(sample_registry, c.contributions(), {"unpriv": True})["extra"] == "lxc.net = none"
    assert resolve(sample_registry, c.contributions(), {})["extra"] == ""


def test_self_dependency_raises_recursive_resolution(sample_registry):
    _require_imports()
    c = ContributionCollector(sample_registry)
    c.propose("webmail.enable", True, condition=option("webmail.enable"), source="loop")
    with pytest.raises(RecursiveResolutionError) as exc:
        resolve(sample_registry, c.contributions())
    assert exc.value.chain == ["webmail.enable", "webmail.enable"]


# -----------------------------------------------------
# Undefined slots, apply, views
# -----------------------------------------------------

def test_undefined_slot_fails_only_when_consumed(sample_registry):
    _require_imports()
    cfg = resolve(sample_registry, [])
    assert cfg.is_defined("host_name") is False
    with pytest.raises(UndefinedSlotError):
        cfg["host_name"]
    assert cfg.get("host_name", "fallback") == "fallback"


def test_unknown_slot_lookup_raises(sample_registry):
    _require_imports()
    cfg = resolve(sample_registry, [])
    with pytest.raises(UnknownSlotError):
        cfg["database.hots"]


def test_apply_transforms_final_value():
    _require_imports()
    r = OptionRegistry()
    r.declare("webmail.max_attachment_size", OptionType.INT, 18, apply=lambda mb: f"{round(mb * 1.3, 1):g}M")
    assert resolve(r, [])["webmail.max_attachment_size"] == "23.4M"

    c = ContributionCollector(r)
    c.propose("webmail.max_attachment_size", 10, source="site")
    assert resolve(r, c.contributions())["webmail.max_attachment_size"] == "13M"


def test_every_declared_slot_has_an_entry(sample_registry):
    _require_imports()
    cfg = resolve(sample_registry, [])
    assert set(cfg) == {s.id for s in sample_registry.list()}
    assert len(cfg) == len(sample_registry)


def test_to_dict_and_section(sample_registry):
    _require_imports()
    cfg = _resolve(sample_registry, [("database.host", "db", Priority.EXPLICIT, "site")])
    tree = cfg.to_dict()
    assert tree["database"] == {"host": "db", "port": 5432}
    assert "host_name" not in tree
    assert cfg.section("database") == {"host": "db", "port": 5432}
    assert cfg.section("nope") == {}


def test_resolution_does_not_mutate_contributions(sample_registry):
    _require_imports()
    value = ["archive"]
    cfg = _resolve(sample_registry, [("plugins", value, Priority.EXPLICIT, "m")])
    assert cfg["plugins"] == ["archive"]
    assert cfg["plugins"] is not value
