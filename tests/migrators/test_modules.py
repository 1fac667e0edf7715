import pytest

from mlp2to3.core.exceptions import InvalidStatusError, InvalidValueError, PersistError
from mlp2to3.migrators.modules import (
    LEGACY_OPTION,
    MODULES_OPTION,
    LegacyModule,
    ModulesMigrator,
    normalize_module_name,
)


@pytest.fixture()
def migrator(network, translator):
    return ModulesMigrator(network, translator)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("class-Mlp_Redirect_Module", "redirect"),
        ("class-mlp_custom_x_module", "custom_x"),
        ("Trasher", "trasher"),
        ("class-mlp_module", "module"),
        ("quicklink_module", "quicklink"),
    ],
)
def test_normalize_module_name(name, expected):
    assert normalize_module_name(name) == expected


def test_migrate_writes_normalized_key(migrator, network):
    assert migrator.migrate(LegacyModule("class-mlp_custom_x_module", "off")) is True

    assert network.get_network_option(MODULES_OPTION) == {"custom_x": False}


def test_migrate_drops_obsolete_modules(migrator, network):
    assert migrator.migrate(LegacyModule("class-mlp_cpt_translator_module", "on")) is False

    assert network.get_network_option(MODULES_OPTION) is None


def test_migrate_is_idempotent(migrator, network):
    record = LegacyModule("class-Mlp_Redirect_Module", "on")

    assert migrator.migrate(record) is True
    once = network.get_network_option(MODULES_OPTION)
    assert migrator.migrate(record) is False

    assert network.get_network_option(MODULES_OPTION) == once == {"redirect": True}


def test_migrate_keeps_other_modules(migrator, network):
    network.update_network_option(MODULES_OPTION, {"trasher": True, "redirect": False})

    migrator.migrate(LegacyModule("class-Mlp_Redirect_Module", "ON"))

    assert network.get_network_option(MODULES_OPTION) == {"trasher": True, "redirect": True}


def test_invalid_status_raises_without_writing(migrator, network):
    with pytest.raises(InvalidStatusError) as exc_info:
        migrator.migrate(LegacyModule("class-mlp_custom_x_module", "maybe"))

    assert exc_info.value.status == "maybe"
    assert network.get_network_option(MODULES_OPTION) is None


def test_rejected_write_raises_persist_error(migrator, network, monkeypatch):
    monkeypatch.setattr(network, "update_network_option", lambda name, value: False)

    with pytest.raises(PersistError, match=MODULES_OPTION):
        migrator.migrate(LegacyModule("class-mlp_custom_x_module", "on"))


def test_legacy_records_read_from_network_option(migrator, seed):
    seed.network_option(LEGACY_OPTION, {"class-Mlp_Trasher_Module": "on", "class-Mlp_Quicklink_Module": "off"})

    assert migrator.has_legacy_source()
    assert migrator.legacy_records() == [
        LegacyModule("class-Mlp_Trasher_Module", "on"),
        LegacyModule("class-Mlp_Quicklink_Module", "off"),
    ]


def test_legacy_records_must_be_a_map(migrator, seed):
    seed.network_option(LEGACY_OPTION, ["not", "a", "map"])

    with pytest.raises(InvalidValueError):
        migrator.legacy_records()


def test_no_legacy_source(migrator):
    assert not migrator.has_legacy_source()
    assert migrator.legacy_records() == []
