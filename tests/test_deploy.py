import pytest

from tattoo_crm.database import build_engine
from tattoo_crm.deploy import (
    ACTION_ABORT,
    ACTION_MARK_APPLIED,
    ACTION_RESOLVE,
    ACTION_RETRY,
    DeployError,
    assert_production_safe,
    classify_failure,
    migrate_with_recovery,
    production_safety_violations,
    recorded_migrations,
    split_statements,
    validate_database_url,
)

SECRETS = {"JWT_ACCESS_SECRET": "a", "JWT_REFRESH_SECRET": "b"}


# ============================================================================
# Safety guard
# ============================================================================


def test_guard_only_applies_in_production():
    assert production_safety_violations({"NODE_ENV": "development", "RUN_SEED": "true"}) == []


def test_guard_blocks_data_changing_flags():
    violations = production_safety_violations({"NODE_ENV": "production", "RUN_SEED": "1", **SECRETS})
    assert len(violations) == 1
    assert violations[0].startswith("RUN_SEED")
    assert production_safety_violations({"ENVIRONMENT": "production", "RESET_DATABASE": "false", **SECRETS}) == []


def test_guard_requires_jwt_secrets():
    violations = production_safety_violations({"ENVIRONMENT": "production"})
    assert violations == ["JWT_ACCESS_SECRET is not set", "JWT_REFRESH_SECRET is not set"]
    with pytest.raises(DeployError):
        assert_production_safe({"ENVIRONMENT": "production", "ACCEPT_DATA_LOSS": "true", **SECRETS})


def test_database_url_must_be_postgres():
    with pytest.raises(DeployError):
        validate_database_url(None)
    with pytest.raises(DeployError):
        validate_database_url("sqlite:///./dev.db")
    assert validate_database_url("postgres://u:p@db:5432/crm") == "postgres://u:p@db:5432/crm"


# ============================================================================
# Failure classification
# ============================================================================

KNOWN = ["001_init", "002_index"]


def test_already_exists_on_known_migration_is_marked_applied():
    action, _ = classify_failure('relation "ix" already exists', "002_index", ["002_index"], KNOWN)
    assert action == ACTION_MARK_APPLIED
    action, _ = classify_failure('relation "ix" already exists', "999_other", [], KNOWN)
    assert action == ACTION_ABORT


def test_transient_errors_are_retried():
    action, _ = classify_failure("could not connect to server: Connection refused", "001_init", [], KNOWN)
    assert action == ACTION_RETRY


def test_recorded_failure_needs_opt_in_and_allow_list():
    msg = "Found failed migrations in the target database: 002_index"
    action, _ = classify_failure(msg, "002_index", ["002_index"], KNOWN, auto_resolve=True, resolvable={"002_index"})
    assert action == ACTION_RESOLVE
    action, reason = classify_failure(msg, "002_index", ["002_index"], KNOWN, auto_resolve=False, resolvable={"002_index"})
    assert action == ACTION_ABORT
    assert "UPDATE schema_migrations" in reason
    action, _ = classify_failure(msg, "002_index", ["002_index"], KNOWN, auto_resolve=True, resolvable=set())
    assert action == ACTION_ABORT


def test_other_errors_abort():
    action, _ = classify_failure("syntax error at or near", "001_init", [], KNOWN)
    assert action == ACTION_ABORT


def test_split_statements_drops_comments():
    sql = "-- header\nCREATE TABLE a (id INTEGER);\n\n-- next\nCREATE INDEX ix ON a (id);\n"
    assert split_statements(sql) == ["CREATE TABLE a (id INTEGER)", "CREATE INDEX ix ON a (id)"]


# ============================================================================
# Runner
# ============================================================================


@pytest.fixture
def migration_engine():
    engine = build_engine("sqlite://")
    yield engine
    engine.dispose()


def test_pending_migrations_apply_once(tmp_path, migration_engine):
    (tmp_path / "001_widgets.sql").write_text("CREATE TABLE widgets (id INTEGER);")
    assert migrate_with_recovery(migration_engine, tmp_path, max_retries=2) == ["001_widgets"]
    assert migrate_with_recovery(migration_engine, tmp_path, max_retries=2) == []
    assert recorded_migrations(migration_engine) == {"001_widgets": "applied"}


def test_existing_objects_are_marked_applied(tmp_path, migration_engine):
    with migration_engine.begin() as conn:
        conn.exec_driver_sql("CREATE TABLE widgets (id INTEGER)")
    (tmp_path / "001_widgets.sql").write_text("CREATE TABLE widgets (id INTEGER);")

    migrate_with_recovery(migration_engine, tmp_path, max_retries=2, sleep=lambda _: None)
    assert recorded_migrations(migration_engine) == {"001_widgets": "applied"}


def test_broken_migration_aborts_and_is_recorded(tmp_path, migration_engine):
    (tmp_path / "001_broken.sql").write_text("CREATE TABLE broken (;")
    with pytest.raises(DeployError):
        migrate_with_recovery(migration_engine, tmp_path, max_retries=2, auto_resolve=False)
    assert recorded_migrations(migration_engine) == {"001_broken": "failed"}
