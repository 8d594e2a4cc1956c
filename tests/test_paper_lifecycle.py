from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.services.errors import ArtifactStoreError, InvalidPaperState, PaperNotFound
from app.services.paper_lifecycle import (
    PaperAction,
    PaperLifecycleManager,
    PaperStatus,
    TRANSITIONS,
    next_status,
    required_status,
)


class _MemoryPaperStore:
    def __init__(self, *rows):
        self.rows = {row.id: row for row in rows}
        self.updates = []

    def get_by_id(self, paper_id, institute_id):
        row = self.rows.get(paper_id)
        if row is None or row.institute_id != institute_id:
            raise PaperNotFound(paper_id)
        return row

    def update_by_id(self, paper_id, institute_id, patch, expected_status=None):
        row = self.rows.get(paper_id)
        if row is None or row.institute_id != institute_id:
            return None
        if expected_status is not None and row.status != expected_status:
            return None
        for key, value in patch.items():
            setattr(row, key, value)
        self.updates.append((paper_id, dict(patch)))
        return row


class _MemoryArtifacts:
    def __init__(self, *locations, failing=(), broken=()):
        self.locations = set(locations)
        self.failing = set(failing)
        self.broken = set(broken)
        self.calls = []

    def delete_if_present(self, location, institute_id):
        self.calls.append((location, institute_id))
        if location in self.failing:
            raise ArtifactStoreError("storage unavailable", location=location)
        if location in self.broken:
            raise ValueError("embedded null byte")
        if location in self.locations:
            self.locations.discard(location)
            return True
        return False


class _Clock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def _paper(paper_id, tenant, status, pdf_url=None, answer_key_url=None, finalized_at=None):
    return SimpleNamespace(
        id=paper_id,
        institute_id=tenant,
        status=status,
        pdf_url=pdf_url,
        answer_key_url=answer_key_url,
        finalized_at=finalized_at,
    )


def _assert_artifacts_coupled(row):
    if row.status != PaperStatus.FINALIZED.value:
        assert row.pdf_url is None
        assert row.answer_key_url is None
        assert row.finalized_at is None


def _manager(store, artifacts=None, **kwargs):
    kwargs.setdefault(
        "clock", _Clock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))
    )
    return PaperLifecycleManager(store, artifacts or _MemoryArtifacts(), **kwargs)


def test_transition_table_only_links_review_and_finalized():
    assert TRANSITIONS == {
        (PaperStatus.REVIEW, PaperAction.FINALIZE): PaperStatus.FINALIZED,
        (PaperStatus.FINALIZED, PaperAction.REOPEN): PaperStatus.REVIEW,
    }
    assert required_status(PaperAction.REOPEN) is PaperStatus.FINALIZED
    assert required_status(PaperAction.FINALIZE) is PaperStatus.REVIEW


@pytest.mark.parametrize(
    "current, action",
    [
        ("draft", PaperAction.FINALIZE),
        ("draft", PaperAction.REOPEN),
        ("review", PaperAction.REOPEN),
        ("finalized", PaperAction.FINALIZE),
        ("archived", PaperAction.REOPEN),
    ],
)
def test_next_status_rejects_undefined_transitions(current, action):
    with pytest.raises(InvalidPaperState) as excinfo:
        next_status(current, action, "p1")
    assert excinfo.value.current_status == current
    assert excinfo.value.required_status == required_status(action).value


def test_reopen_finalized_paper_returns_to_review():
    store = _MemoryPaperStore(
        _paper(
            "p1", "t1", "finalized", "u1", "u2",
            finalized_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
    )
    artifacts = _MemoryArtifacts("u1", "u2")

    result = _manager(store, artifacts).reopen("p1", "t1")

    assert result["status"] == "review"
    assert result["paper_id"] == "p1"
    row = store.rows["p1"]
    assert row.finalized_at is None
    _assert_artifacts_coupled(row)
    assert result["deleted"] == {"pdf": True, "answer_key": True}
    assert artifacts.locations == set()


def test_reopen_keeps_files_when_reclaim_disabled():
    store = _MemoryPaperStore(_paper("p1", "t1", "finalized", "u1", "u2"))
    artifacts = _MemoryArtifacts("u1", "u2")

    result = _manager(store, artifacts, reopen_deletes_artifacts=False).reopen("p1", "t1")

    assert "deleted" not in result
    assert artifacts.calls == []
    _assert_artifacts_coupled(store.rows["p1"])


def test_reopen_succeeds_when_artifact_storage_fails():
    store = _MemoryPaperStore(_paper("p1", "t1", "finalized", "u1", "u2"))
    artifacts = _MemoryArtifacts("u2", failing={"u1"})

    result = _manager(store, artifacts).reopen("p1", "t1")

    assert result["status"] == "review"
    assert result["deleted"] == {"pdf": False, "answer_key": True}
    _assert_artifacts_coupled(store.rows["p1"])


def test_reopen_on_review_paper_fails_and_leaves_row_untouched():
    store = _MemoryPaperStore(_paper("p1", "t1", "review"))

    with pytest.raises(InvalidPaperState) as excinfo:
        _manager(store).reopen("p1", "t1")

    assert "finalized" in excinfo.value.message
    assert store.updates == []
    assert store.rows["p1"].status == "review"


def test_finalize_stamps_artifacts_and_timestamp():
    store = _MemoryPaperStore(_paper("p1", "t1", "review"))
    clock = _Clock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))

    result = _manager(store, clock=clock).finalize("p1", "t1", "u1", "u2")

    row = store.rows["p1"]
    assert result == {
        "paper_id": "p1",
        "status": "finalized",
        "finalized_at": "2024-03-01T09:00:00+00:00",
    }
    assert (row.pdf_url, row.answer_key_url) == ("u1", "u2")
    assert row.finalized_at == clock.now


def test_finalize_refuses_to_overwrite_finalized_paper():
    store = _MemoryPaperStore(_paper("p1", "t1", "finalized", "u1", "u2"))

    with pytest.raises(InvalidPaperState):
        _manager(store).finalize("p1", "t1", "u9", "u10")

    row = store.rows["p1"]
    assert (row.pdf_url, row.answer_key_url) == ("u1", "u2")


def test_finalize_requires_pdf_url():
    store = _MemoryPaperStore(_paper("p1", "t1", "review"))

    with pytest.raises(ValueError):
        _manager(store).finalize("p1", "t1", "", "u2")


def test_reopen_then_finalize_matches_direct_finalize_except_timestamp():
    clock = _Clock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))
    store = _MemoryPaperStore(
        _paper("a", "t1", "review"),
        _paper("b", "t1", "review"),
    )
    manager = _manager(store, clock=clock)

    manager.finalize("a", "t1", "pa", "ka")
    manager.finalize("b", "t1", "pb", "kb")
    first_stamp = store.rows["b"].finalized_at
    clock.advance(hours=1)
    manager.reopen("b", "t1")
    manager.finalize("b", "t1", "pb", "kb")

    a, b = store.rows["a"], store.rows["b"]
    assert b.status == a.status == "finalized"
    assert (b.pdf_url, b.answer_key_url) == ("pb", "kb")
    assert b.finalized_at > first_stamp


def test_force_clear_repairs_corrupt_review_paper():
    store = _MemoryPaperStore(_paper("p2", "t1", "review", "u3", "u4"))
    artifacts = _MemoryArtifacts("u3", "u4")

    result = _manager(store, artifacts).force_clear_artifacts("p2", "t1")

    row = store.rows["p2"]
    assert row.pdf_url is None and row.answer_key_url is None
    assert result["status"] == "review"
    assert result["deleted"] == {"pdf": True, "answer_key": True}
    assert result["errors"] == []


def test_force_clear_nulls_row_even_when_storage_fails():
    store = _MemoryPaperStore(_paper("p2", "t1", "review", "u3", "u4"))
    artifacts = _MemoryArtifacts(failing={"u3", "u4"})

    result = _manager(store, artifacts).force_clear_artifacts("p2", "t1")

    row = store.rows["p2"]
    assert row.pdf_url is None and row.answer_key_url is None
    assert result["deleted"] == {"pdf": False, "answer_key": False}
    assert len(result["errors"]) == 2


def test_force_clear_nulls_row_when_storage_raises_unexpectedly():
    store = _MemoryPaperStore(_paper("p2", "t1", "review", "bad\x00name.pdf", "u4"))
    artifacts = _MemoryArtifacts("u4", broken={"bad\x00name.pdf"})

    result = _manager(store, artifacts).force_clear_artifacts("p2", "t1")

    row = store.rows["p2"]
    assert row.pdf_url is None and row.answer_key_url is None
    assert result["deleted"] == {"pdf": False, "answer_key": True}
    assert result["errors"] == ["Question paper: embedded null byte"]


def test_artifact_deletes_are_scoped_to_caller_institute():
    store = _MemoryPaperStore(_paper("p1", "t1", "finalized", "u1", "u2"))
    artifacts = _MemoryArtifacts("u1", "u2")
    manager = _manager(store, artifacts)

    manager.reopen("p1", "t1")
    manager.force_clear_artifacts("p1", "t1")

    assert {institute for _, institute in artifacts.calls} == {"t1"}


def test_force_clear_keeps_status_of_finalized_paper():
    store = _MemoryPaperStore(_paper("p3", "t1", "finalized", "u5", None))

    result = _manager(store, _MemoryArtifacts("u5")).force_clear_artifacts("p3", "t1")

    assert result["status"] == "finalized"
    assert result["deleted"] == {"pdf": True, "answer_key": False}
    assert store.rows["p3"].pdf_url is None


def test_force_clear_is_idempotent():
    store = _MemoryPaperStore(_paper("p2", "t1", "review", "u3", "u4"))
    manager = _manager(store, _MemoryArtifacts("u3", "u4"))

    manager.force_clear_artifacts("p2", "t1")
    snapshot = vars(store.rows["p2"]).copy()
    second = manager.force_clear_artifacts("p2", "t1")

    assert second["deleted"] == {"pdf": False, "answer_key": False}
    assert vars(store.rows["p2"]) == snapshot


@pytest.mark.parametrize("operation", ["reopen", "force_clear_artifacts", "finalize"])
def test_other_institute_always_gets_not_found(operation):
    store = _MemoryPaperStore(_paper("p1", "tenant-a", "finalized", "u1", "u2"))
    manager = _manager(store)
    args = ("p1", "tenant-b")
    if operation == "finalize":
        args = args + ("x", "y")

    with pytest.raises(PaperNotFound):
        getattr(manager, operation)(*args)

    row = store.rows["p1"]
    assert (row.status, row.pdf_url, row.answer_key_url) == ("finalized", "u1", "u2")
    assert store.updates == []


def test_lost_race_reports_invalid_state():
    store = _MemoryPaperStore(_paper("p1", "t1", "finalized", "u1", "u2"))
    original_update = store.update_by_id

    def _concurrent_reopen(paper_id, institute_id, patch, expected_status=None):
        store.rows[paper_id].status = "review"
        return original_update(paper_id, institute_id, patch, expected_status)

    store.update_by_id = _concurrent_reopen

    with pytest.raises(InvalidPaperState):
        _manager(store).reopen("p1", "t1")
