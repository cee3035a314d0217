from tattoo_crm.domain.audit.service import AuditService, build_diff
from tattoo_crm.models import AuditLog, Branch


def test_build_diff_lists_changed_fields_only():
    before = {"name": "Main", "phone": "0912000111"}
    diff = build_diff(before, {"name": "Main", "phone": "0912000222"}, ["name", "phone", "address"])
    assert diff == {"phone": {"from": "0912000111", "to": "0912000222"}}


def test_failed_audit_write_leaves_session_usable(db, monkeypatch):
    def broken_commit():
        raise RuntimeError("database went away")

    monkeypatch.setattr(db, "commit", broken_commit)
    AuditService(db).log(None, "BRANCH_CREATE", "BRANCH", 1)
    monkeypatch.undo()

    db.add(Branch(name="After failure"))
    db.commit()
    assert db.query(AuditLog).count() == 0
    assert db.query(Branch).filter(Branch.name == "After failure").count() == 1
