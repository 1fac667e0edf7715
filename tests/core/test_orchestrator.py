import json

import pytest

from mlp2to3.config.schema import Entity
from mlp2to3.core.exceptions import StoreConnectionError
from mlp2to3.core.migrator import (
    MigrationOrchestrator,
    MigrationStep,
    build_steps,
    run_migration,
)
from mlp2to3.core.state import EntityResult, RunState
from mlp2to3.migrators.modules import LEGACY_OPTION as MODULES_LEGACY_OPTION
from mlp2to3.migrators.modules import MODULES_OPTION
from mlp2to3.migrators.redirects import LEGACY_OPTION as REDIRECT_OPTION


class ExplodingMigrator:
    entity = "exploding"

    def __init__(self, error):
        self.error = error

    def has_legacy_source(self):
        return True

    def migrate_all(self, result=None):
        raise self.error


class CountingMigrator:
    entity = "counting"

    def __init__(self):
        self.calls = 0

    def has_legacy_source(self):
        return True

    def migrate_all(self, result=None):
        self.calls += 1
        result = result or EntityResult(self.entity)
        result.migrated += 1
        return result


def _seed_network(seed):
    seed.network_option(MODULES_LEGACY_OPTION, {
        "class-Mlp_Redirect_Module": "on",
        "class-Mlp_Quicklink_Module": "on",
        "class-Mlp_Broken_Module": "maybe",
    })
    seed.link(1, 10, 2, 20)
    seed.site_option(2, REDIRECT_OPTION, json.dumps({"foo": 1}))
    seed.legacy_language(http_name="fr-FR", english_name="French", wp_locale="fr_FR")


def test_build_steps_follow_fixed_order(ctx):
    steps = build_steps(ctx, [Entity.LANGUAGES, Entity.MODULES])

    assert [s.entity for s in steps] == [Entity.MODULES, Entity.LANGUAGES]
    assert [s.migrator.entity for s in steps] == ["modules", "languages"]


def test_full_run_migrates_every_entity(ctx, seed, network):
    _seed_network(seed)

    summary = MigrationOrchestrator(ctx, build_steps(ctx)).run()

    assert summary.state is RunState.COMPLETED
    assert list(summary.results) == ["modules", "relationships", "redirects", "languages"]

    modules = summary.results["modules"]
    assert (modules.migrated, modules.skipped, modules.failed) == (1, 1, 1)
    assert network.get_network_option(MODULES_OPTION) == {"redirect": True}

    assert summary.results["relationships"].migrated == 1
    assert summary.results["redirects"].migrated == 1
    assert summary.results["languages"].migrated == 1

    assert summary.errors == [("modules", 'Invalid module status "maybe"')]
    assert not summary.succeeded


def test_second_run_changes_nothing(ctx, seed):
    _seed_network(seed)
    MigrationOrchestrator(ctx, build_steps(ctx)).run()

    summary = MigrationOrchestrator(ctx, build_steps(ctx)).run()

    assert summary.results["modules"].migrated == 0
    assert summary.results["relationships"].migrated == 0
    assert summary.results["redirects"].migrated == 0
    assert len(seed.rows("wp_mlp3_content_relations")) == 1
    assert len(seed.rows("wp_mlp3_redirects")) == 1


def test_missing_legacy_data_is_reported_not_failed(ctx, db):
    db.execute("DROP TABLE wp_multilingual_linked")
    db.execute("DROP TABLE wp_mlp_languages")

    summary = MigrationOrchestrator(ctx, build_steps(ctx)).run()

    assert summary.state is RunState.COMPLETED
    assert all(r.source_missing for r in summary.results.values())
    assert summary.succeeded


def test_entity_error_does_not_stop_later_entities(ctx, seed, db):
    _seed_network(seed)
    steps = build_steps(ctx, [Entity.REDIRECTS, Entity.LANGUAGES])
    steps[0].migrator.combine_query = "SELECT no_such_column FROM `{table}`"

    summary = MigrationOrchestrator(ctx, steps).run()

    assert summary.state is RunState.COMPLETED
    redirects = summary.results["redirects"]
    assert redirects.aborted
    assert "no_such_column" in redirects.errors[0]
    assert not db.table_exists("wp_mlp2to3_redirects_tmp")
    assert summary.results["languages"].migrated == 1


def test_connection_loss_fails_the_run(ctx):
    later = CountingMigrator()
    steps = [
        MigrationStep(Entity.MODULES, ExplodingMigrator(StoreConnectionError("gone"))),
        MigrationStep(Entity.LANGUAGES, later),
    ]

    summary = MigrationOrchestrator(ctx, steps).run()

    assert summary.state is RunState.FAILED
    assert summary.errors == [("modules", "gone")]
    assert later.calls == 0
    assert "languages" not in summary.results


def test_unknown_errors_propagate(ctx):
    steps = [MigrationStep(Entity.MODULES, ExplodingMigrator(RuntimeError("bug")))]

    orchestrator = MigrationOrchestrator(ctx, steps)

    with pytest.raises(RuntimeError):
        orchestrator.run()

    assert orchestrator.summary.state is RunState.FAILED
    assert orchestrator.summary.errors == [("modules", "RuntimeError: bug")]


def test_check_legacy_disabled_runs_everything(ctx, db):
    ctx.config.migration.check_legacy = False
    db.execute("DROP TABLE wp_multilingual_linked")

    summary = MigrationOrchestrator(ctx, build_steps(ctx)).run()

    assert summary.state is RunState.COMPLETED
    assert not any(r.source_missing for r in summary.results.values())
    assert summary.results["modules"].migrated == 0
    assert summary.results["relationships"].aborted
    assert "wp_multilingual_linked" in summary.results["relationships"].errors[0]
    assert not summary.results["languages"].aborted


def test_dry_run_leaves_store_untouched(ctx, seed, network):
    _seed_network(seed)

    summary = run_migration(ctx, dry_run=True)

    assert summary.dry_run
    assert summary.results["relationships"].migrated == 1
    assert seed.rows("wp_mlp3_content_relations") == []
    assert seed.rows("wp_mlp3_redirects") == []
    assert network.get_network_option(MODULES_OPTION) is None


def test_run_migration_limits_entities(ctx, seed):
    _seed_network(seed)

    summary = run_migration(ctx, entities=[Entity.RELATIONSHIPS])

    assert list(summary.results) == ["relationships"]
    assert seed.rows("wp_mlp3_redirects") == []
