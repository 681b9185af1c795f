"""End-to-end tests for the runner entry points against in-memory SQLite."""

import pytest

from sqlwave.core.errors import (
    ConfigError,
    CyclicDependencyError,
    DependencyResolutionError,
    ExecutionError,
    LedgerUninitializedError,
    MalformedArtifactError,
    UnresolvedDependency,
)
from sqlwave.core.settings import SqlwaveSettings
from sqlwave.migrations.ledger import Ledger, LedgerStatus
from sqlwave.migrations.loader import build_record
from sqlwave.migrations.model import MigrationType
from sqlwave.migrations.runner import (
    MigrateOptions,
    MigrationState,
    apply,
    init,
    migrate,
    plan,
    status,
)

USERS = "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT);"
EMAIL = "ALTER TABLE users ADD COLUMN email TEXT;"
VIEW = "DROP VIEW IF EXISTS users_with_email; CREATE VIEW users_with_email AS SELECT id, email FROM users;"


@pytest.fixture
def basic(artifacts):
    artifacts.write("V001__create_users.sql", USERS)
    artifacts.write("S001__seed_users.sql", "INSERT INTO users (name) VALUES ('ada');",
                    dependencies=["V001__create_users.sql"])
    artifacts.write("V002__add_email.sql", EMAIL, dependencies=["V001__create_users.sql"])
    artifacts.write("R__users_with_email.sql", VIEW, dependencies=["V002__add_email.sql"])
    return artifacts


@pytest.fixture
def view_before_column(ledger_conn, artifacts):
    """Ledger where the view is recorded as current but V002 is still pending."""
    artifacts.write("V001__create_users.sql", USERS)
    artifacts.write("V002__add_email.sql", EMAIL, dependencies=["V001__create_users.sql"])
    view = artifacts.write("R__users_with_email.sql", VIEW, dependencies=["V002__add_email.sql"])

    ledger_conn.executescript(USERS)
    ledger = Ledger(ledger_conn)
    ledger.record(build_record("V001__create_users.sql", USERS, set(), {}))
    ledger.record(build_record("R__users_with_email.sql", view.read_text(), set(), {}))
    return artifacts


class TestInit:
    def test_creates_ledger(self, conn):
        init(conn)
        assert Ledger(conn).exists()

    def test_idempotent_and_custom_table(self, conn):
        options = MigrateOptions(table_name="schema_history")
        init(conn, options)
        init(conn, options)
        assert Ledger(conn, "schema_history").exists()
        assert not Ledger(conn).exists()

    def test_unknown_dialect(self, conn):
        with pytest.raises(ConfigError, match="Unknown dialect"):
            init(conn, MigrateOptions(dialect="oracle"))

    def test_bad_table_name(self, conn):
        with pytest.raises(ConfigError):
            init(conn, MigrateOptions(table_name="bad name"))


class TestMigrate:
    def test_requires_init(self, conn, basic):
        with pytest.raises(LedgerUninitializedError):
            migrate(conn, basic.options())

    def test_requires_init_before_reading_artifacts(self, conn, tmp_path):
        with pytest.raises(LedgerUninitializedError):
            migrate(conn, MigrateOptions(root=tmp_path / "does-not-exist"))

    def test_fresh_database(self, ledger_conn, basic):
        applied = migrate(ledger_conn, basic.options())

        assert [(m.filename, m.wave) for m in applied] == [
            ("V001__create_users.sql", 1),
            ("S001__seed_users.sql", 2),
            ("V002__add_email.sql", 2),
            ("R__users_with_email.sql", 3),
        ]
        assert applied[0].type is MigrationType.VERSIONED
        assert applied[0].version == "001"
        assert ledger_conn.execute("SELECT count(*) FROM users_with_email").fetchone() == (1,)

    def test_idempotent(self, ledger_conn, basic):
        migrate(ledger_conn, basic.options())
        assert migrate(ledger_conn, basic.options()) == []
        assert len(Ledger(ledger_conn).entries()) == 4

    def test_new_versioned_only(self, ledger_conn, basic):
        migrate(ledger_conn, basic.options())
        basic.write("V003__add_age.sql", "ALTER TABLE users ADD COLUMN age INTEGER;",
                    dependencies=["V002__add_email.sql"])
        applied = migrate(ledger_conn, basic.options())
        assert [m.filename for m in applied] == ["V003__add_age.sql"]

    def test_changed_repeatable_reruns_and_keeps_history(self, ledger_conn, basic):
        migrate(ledger_conn, basic.options())
        basic.write(
            "R__users_with_email.sql",
            "DROP VIEW IF EXISTS users_with_email; "
            "CREATE VIEW users_with_email AS SELECT id, name, email FROM users;",
            dependencies=["V002__add_email.sql"],
        )
        applied = migrate(ledger_conn, basic.options())
        assert [m.filename for m in applied] == ["R__users_with_email.sql"]
        assert applied[0].wave == 1

        statuses = sorted(
            e.status.value for e in Ledger(ledger_conn).entries() if e.filename == "R__users_with_email.sql"
        )
        assert statuses == ["invalidated", "performed"]

    def test_cascading_rerun(self, ledger_conn, view_before_column):
        """An unchanged view is re-created after a pending migration it depends on."""
        applied = migrate(ledger_conn, view_before_column.options())
        assert [(m.filename, m.wave) for m in applied] == [
            ("V002__add_email.sql", 1),
            ("R__users_with_email.sql", 2),
        ]
        assert ledger_conn.execute("SELECT email FROM users_with_email").fetchall() == []

        statuses = sorted(
            e.status.value for e in Ledger(ledger_conn).entries() if e.filename == "R__users_with_email.sql"
        )
        assert statuses == ["invalidated", "performed"]

    def test_prerequisite_refresh(self, ledger_conn, artifacts):
        artifacts.write("R__helper_view.sql", "CREATE VIEW IF NOT EXISTS helper AS SELECT 1 AS one;")
        migrate(ledger_conn, artifacts.options())

        artifacts.write("V001__uses_helper.sql", "CREATE TABLE t AS SELECT one FROM helper;",
                        dependencies=["R__helper_view.sql"])
        applied = migrate(ledger_conn, artifacts.options())
        assert [(m.filename, m.wave) for m in applied] == [
            ("R__helper_view.sql", 1),
            ("V001__uses_helper.sql", 2),
        ]

    def test_mixed_scenario_waves(self, ledger_conn, artifacts):
        artifacts.write("R__a.sql", "SELECT 1;", id="A")
        artifacts.write("V001__b.sql", "SELECT 1;", id="B")
        artifacts.write("V002__c.sql", "SELECT 1;", id="C", dependencies=["A", "B"])
        artifacts.write("V003__d.sql", "SELECT 1;", id="D", dependencies=["B"])

        migration_plan = plan(ledger_conn, artifacts.options())
        assert [set(w.ids) for w in migration_plan.waves] == [{"A", "B"}, {"C", "D"}]

    def test_metadata_ids_are_used_for_dependencies(self, ledger_conn, artifacts):
        artifacts.write("V001__users.sql", USERS, id="users")
        artifacts.write("R__names.sql", "CREATE VIEW names AS SELECT name FROM users;",
                        id="names_view", dependencies=["users"])
        applied = migrate(ledger_conn, artifacts.options())
        assert [m.id for m in applied] == ["users", "names_view"]
        assert {e.filename for e in Ledger(ledger_conn).entries()} == {"R__names.sql", "V001__users.sql"}


class TestValidationBeforeExecution:
    def test_unknown_dependency_runs_nothing(self, ledger_conn, artifacts):
        artifacts.write("V001__a.sql", "CREATE TABLE a (id INTEGER);")
        artifacts.write("V002__b.sql", "CREATE TABLE b (id INTEGER);", dependencies=["V404__ghost.sql"])

        with pytest.raises(DependencyResolutionError) as exc_info:
            migrate(ledger_conn, artifacts.options())

        assert exc_info.value.unresolved == [UnresolvedDependency("V002__b.sql", "V404__ghost.sql")]
        assert ledger_conn.execute(
            "SELECT count(*) FROM sqlite_master WHERE name IN ('a', 'b')"
        ).fetchone() == (0,)
        assert Ledger(ledger_conn).entries() == []

    def test_malformed_artifact_runs_nothing(self, ledger_conn, artifacts):
        artifacts.write("V001__a.sql", "CREATE TABLE a (id INTEGER);")
        artifacts.write("V__unversioned.sql", "SELECT 1;")
        with pytest.raises(MalformedArtifactError):
            migrate(ledger_conn, artifacts.options())
        assert Ledger(ledger_conn).entries() == []

    def test_invalid_metadata_json_runs_nothing(self, ledger_conn, artifacts):
        artifacts.write("V001__a.sql", "CREATE TABLE a (id INTEGER);")
        (artifacts.path / "V002__b.sql").write_text(
            '/* {"dependencies": ["V001__a.sql",]} */\nCREATE TABLE b (id INTEGER);'
        )
        with pytest.raises(MalformedArtifactError) as exc_info:
            migrate(ledger_conn, artifacts.options())
        assert exc_info.value.filename == "V002__b.sql"
        assert Ledger(ledger_conn).entries() == []

    def test_byte_order_mark_keeps_dependencies(self, ledger_conn, artifacts):
        artifacts.write("V001__a.sql", "SELECT 1;")
        body = '/* {"dependencies": ["V003__c.sql"]} */\nSELECT 2;'
        (artifacts.path / "V002__b.sql").write_bytes(b"\xef\xbb\xbf" + body.encode("utf-8"))
        artifacts.write("V003__c.sql", "SELECT 3;")

        migration_plan = plan(ledger_conn, artifacts.options())
        assert migration_plan.graph["V002__b.sql"].dependencies == frozenset({"V003__c.sql"})
        assert [w.ids for w in migration_plan.waves] == [
            ("V001__a.sql", "V003__c.sql"),
            ("V002__b.sql",),
        ]

    def test_versioned_cycle_runs_nothing(self, ledger_conn, artifacts):
        artifacts.write("V001__a.sql", "SELECT 1;", dependencies=["V002__b.sql"])
        artifacts.write("V002__b.sql", "SELECT 1;", dependencies=["V001__a.sql"])
        with pytest.raises(CyclicDependencyError):
            migrate(ledger_conn, artifacts.options())
        assert Ledger(ledger_conn).entries() == []

    def test_duplicate_ids_rejected(self, ledger_conn, artifacts):
        artifacts.write("V001__a.sql", "SELECT 1;", id="same")
        artifacts.write("V002__b.sql", "SELECT 1;", id="same")
        with pytest.raises(DependencyResolutionError) as exc_info:
            plan(ledger_conn, artifacts.options())
        assert exc_info.value.duplicates == ["same"]


class TestFailFast:
    @pytest.fixture
    def three_waves(self, artifacts):
        artifacts.write("V001__w1.sql", "CREATE TABLE w1 (id INTEGER);")
        artifacts.write("V002__w2_ok.sql", "CREATE TABLE w2a (id INTEGER);", dependencies=["V001__w1.sql"])
        artifacts.write("V003__w2_bad.sql", "INSERT INTO no_such_table VALUES (1);",
                        dependencies=["V001__w1.sql"])
        artifacts.write("V004__w2_later.sql", "CREATE TABLE w2c (id INTEGER);", dependencies=["V001__w1.sql"])
        artifacts.write("V005__w3.sql", "CREATE TABLE w3 (id INTEGER);", dependencies=["V002__w2_ok.sql"])
        return artifacts

    def test_apply_returns_partial_result(self, ledger_conn, three_waves, recorder):
        result = apply(ledger_conn, three_waves.options(log_callback=recorder))

        assert not result.success
        assert [m.filename for m in result.applied] == ["V001__w1.sql", "V002__w2_ok.sql"]
        assert result.failed.filename == "V003__w2_bad.sql"
        assert len(result.waves) == 3
        assert recorder.kinds("V004__w2_later.sql") == []
        assert recorder.kinds("V005__w3.sql") == []
        assert Ledger(ledger_conn).exclusions() == {"V001__w1.sql", "V002__w2_ok.sql"}

        with pytest.raises(ExecutionError) as exc_info:
            result.raise_for_error()
        assert exc_info.value.migration.filename == "V003__w2_bad.sql"

        payload = result.to_dict()
        assert payload["success"] is False
        assert payload["failed"]["filename"] == "V003__w2_bad.sql"
        assert payload["error"]["category"] == "DATABASE"

    def test_migrate_returns_completed_work(self, ledger_conn, three_waves):
        applied = migrate(ledger_conn, three_waves.options())
        assert [m.filename for m in applied] == ["V001__w1.sql", "V002__w2_ok.sql"]

    def test_rerun_after_fix_resumes(self, ledger_conn, three_waves):
        migrate(ledger_conn, three_waves.options())
        three_waves.write("V003__w2_bad.sql", "CREATE TABLE w2b (id INTEGER);", dependencies=["V001__w1.sql"])
        applied = migrate(ledger_conn, three_waves.options())
        assert [m.filename for m in applied] == ["V003__w2_bad.sql", "V004__w2_later.sql", "V005__w3.sql"]


class TestPlanAndStatus:
    def test_plan_executes_nothing(self, ledger_conn, basic):
        migration_plan = plan(ledger_conn, basic.options())
        assert [m.filename for m in migration_plan.migrations] == [
            "V001__create_users.sql",
            "S001__seed_users.sql",
            "V002__add_email.sql",
            "R__users_with_email.sql",
        ]
        assert Ledger(ledger_conn).entries() == []
        payload = migration_plan.to_dict()
        assert payload["total"] == 4
        assert payload["waves"][0]["wave"] == 1

    def test_status_states(self, ledger_conn, view_before_column):
        view_before_column.write("R__names.sql", "CREATE VIEW IF NOT EXISTS names AS SELECT name FROM users;")

        statuses = status(ledger_conn, view_before_column.options())
        states = {s.migration.filename: s.state for s in statuses}
        assert states == {
            "V001__create_users.sql": MigrationState.APPLIED,
            "V002__add_email.sql": MigrationState.PENDING,
            "R__users_with_email.sql": MigrationState.CASCADED,
            "R__names.sql": MigrationState.PENDING,
        }
        assert statuses[0].migration.filename == "V001__create_users.sql"
        assert statuses[0].migration.wave is None
        assert Ledger(ledger_conn).repeatable_hashes().keys() == {"R__users_with_email.sql"}

    def test_status_changed(self, ledger_conn, basic):
        migrate(ledger_conn, basic.options())
        basic.write("R__users_with_email.sql", VIEW + " -- touched", dependencies=["V002__add_email.sql"])
        [changed] = [s for s in status(ledger_conn, basic.options()) if s.state is not MigrationState.APPLIED]
        assert changed.migration.filename == "R__users_with_email.sql"
        assert changed.state is MigrationState.CHANGED
        assert changed.to_dict()["state"] == "changed"

    def test_status_order(self, ledger_conn, basic):
        migrate(ledger_conn, basic.options())
        basic.write("V003__add_age.sql", "ALTER TABLE users ADD COLUMN age INTEGER;")
        filenames = [s.migration.filename for s in status(ledger_conn, basic.options())]
        assert filenames[-1] == "V003__add_age.sql"


class TestOptions:
    def test_defaults(self):
        options = MigrateOptions()
        assert str(options.root) == "migrations/"
        assert options.table_name == "migrations"
        assert options.log_callback is None
        assert options.dialect == "sqlite"

    def test_from_settings_with_overrides(self):
        settings = SqlwaveSettings(root="db/", table_name="history")
        options = MigrateOptions.from_settings(settings, table_name=None, root="other/")
        assert options.root == "other/"
        assert options.table_name == "history"

    def test_custom_table_end_to_end(self, conn, basic):
        options = basic.options(table_name="schema_history")
        init(conn, options)
        assert len(migrate(conn, options)) == 4
        assert [e.status for e in Ledger(conn, "schema_history").entries()] == [LedgerStatus.PERFORMED] * 4
