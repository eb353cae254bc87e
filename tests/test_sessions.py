import pytest

from geoattend.core.config import settings
from geoattend.core.errors import ErrorKind, InvalidInput, NotAuthorized, NotFound, StateConflict
from geoattend.crud import attendance as crud_attendance
from geoattend.crud import session as crud_session
from geoattend.db.models.attendance import AttendanceRecord
from geoattend.schemas.attendance import Coordinates
from tests.conftest import DEPARTMENT, YEAR


def open_session(db, teacher, **kwargs):
    params = dict(title="Data Structures", department=DEPARTMENT, year=YEAR, teacher_id=teacher.id)
    params.update(kwargs)
    return crud_session.create_session(db, **params)


def test_create_session_defaults(db, teacher, frozen_clock):
    session = open_session(db, teacher)
    assert session.is_open is True
    assert session.closed_at is None
    assert session.created_at == frozen_clock.now
    assert session.allowed_radius == 100.0
    assert session.has_anchor is False
    assert session.current_token is None


def test_create_session_with_anchor(db, teacher):
    session = open_session(db, teacher, latitude=19.07, longitude=72.87, allowed_radius=50)
    assert session.has_anchor
    assert session.allowed_radius == 50


def test_create_session_rejects_half_an_anchor(db, teacher):
    with pytest.raises(InvalidInput) as excinfo:
        open_session(db, teacher, latitude=19.07)
    assert excinfo.value.kind == ErrorKind.INVALID_COORDINATES


@pytest.mark.parametrize("radius", [0, -5, float("nan")])
def test_create_session_rejects_bad_radius(db, teacher, radius):
    with pytest.raises(InvalidInput):
        open_session(db, teacher, allowed_radius=radius)


def test_students_cannot_open_sessions(db, student):
    with pytest.raises(NotAuthorized):
        open_session(db, student)


def test_close_session_sets_closed_at(db, teacher, frozen_clock):
    session = open_session(db, teacher)
    frozen_clock.advance(seconds=30)

    result = crud_session.close_session(db, session.id, teacher.id)

    db.refresh(session)
    assert result["ok"] is True
    assert session.is_open is False
    assert session.closed_at == frozen_clock.now


def test_close_session_requires_owner(db, teacher, make_user):
    other = make_user(role="teacher")
    session = open_session(db, teacher)
    with pytest.raises(NotAuthorized) as excinfo:
        crud_session.close_session(db, session.id, other.id)
    assert excinfo.value.kind == ErrorKind.NOT_SESSION_OWNER


def test_close_is_terminal(db, teacher):
    session = open_session(db, teacher)
    crud_session.close_session(db, session.id, teacher.id)
    with pytest.raises(StateConflict) as excinfo:
        crud_session.close_session(db, session.id, teacher.id)
    assert excinfo.value.kind == ErrorKind.SESSION_CLOSED


def test_close_unknown_session(db, teacher):
    with pytest.raises(NotFound) as excinfo:
        crud_session.close_session(db, 999, teacher.id)
    assert excinfo.value.kind == ErrorKind.SESSION_NOT_FOUND


def test_expiry_sweep_closes_only_aged_sessions(db, teacher, frozen_clock):
    old = open_session(db, teacher, title="old")
    frozen_clock.advance(seconds=90)
    fresh = open_session(db, teacher, title="fresh")
    frozen_clock.advance(seconds=60)  # old is 150s, fresh is 60s

    result = crud_session.close_expired_sessions(db)

    assert result == {"closed_count": 1}
    db.refresh(old)
    db.refresh(fresh)
    assert old.is_open is False
    assert old.closed_at == frozen_clock.now
    assert fresh.is_open is True


def test_no_timeout_keeps_sessions_open(db, teacher, frozen_clock, monkeypatch):
    monkeypatch.setattr(settings, "SESSION_TIMEOUT_SECONDS", None)
    session = open_session(db, teacher)
    frozen_clock.advance(hours=6)

    assert crud_session.close_expired_sessions(db) == {"closed_count": 0}
    assert crud_session.list_open_for_cohort(db, DEPARTMENT, YEAR) == [session]


def test_listing_hides_aged_out_sessions_before_the_sweep(db, teacher, student, frozen_clock):
    session = open_session(db, teacher)
    assert crud_session.list_open_for_student(db, student.id) == [session]

    frozen_clock.advance(seconds=121)

    assert crud_session.list_open_for_student(db, student.id) == []
    # listing is read-only; the row itself is still marked open
    db.refresh(session)
    assert session.is_open is True


def test_listing_is_scoped_to_cohort(db, teacher, make_user):
    open_session(db, teacher, department="ECE")
    open_session(db, teacher, year=YEAR + 1)
    mine = open_session(db, teacher)
    student = make_user()

    assert crud_session.list_open_for_student(db, student.id) == [mine]


def test_teacher_listing(db, teacher, make_user, frozen_clock):
    first = open_session(db, teacher, title="first")
    frozen_clock.advance(seconds=1)
    second = open_session(db, teacher, title="second")
    open_session(db, make_user(role="teacher"), title="someone else's")

    assert crud_session.list_teacher_sessions(db, teacher.id) == [second, first]


def test_issue_token(db, teacher, frozen_clock):
    session = open_session(db, teacher)
    issued = crud_session.issue_token(db, session.id, teacher.id)

    db.refresh(session)
    assert issued["token"].startswith("AT_")
    assert session.current_token == issued["token"]
    assert issued["expiry"] == session.token_expiry
    assert (issued["expiry"] - frozen_clock.now).total_seconds() == 300


def test_issue_token_requires_owner_and_open_session(db, teacher, make_user):
    session = open_session(db, teacher)
    with pytest.raises(NotAuthorized):
        crud_session.issue_token(db, session.id, make_user(role="teacher").id)

    crud_session.close_session(db, session.id, teacher.id)
    with pytest.raises(StateConflict) as excinfo:
        crud_session.issue_token(db, session.id, teacher.id)
    assert excinfo.value.kind == ErrorKind.SESSION_CLOSED


def test_new_token_starts_with_empty_redemptions(db, teacher, make_user):
    session = open_session(db, teacher, latitude=0.0, longitude=0.0)
    first = crud_session.issue_token(db, session.id, teacher.id)
    for _ in range(3):
        crud_attendance.check_in_with_token(
            db, first["token"], make_user().id, coords=Coordinates(latitude=0.0, longitude=0.0003)
        )
    db.refresh(session)
    assert len(session.redeemed_by) == 3

    second = crud_session.issue_token(db, session.id, teacher.id)

    db.refresh(session)
    assert second["token"] != first["token"]
    assert session.redeemed_by == set()
    assert session.redemptions == []


def test_validate_token_verdicts(db, teacher, frozen_clock):
    session = open_session(db, teacher)
    assert crud_session.validate_token(db, "AT_nope_0_0")["kind"] == ErrorKind.INVALID_TOKEN.value
    assert crud_session.validate_token(db, "")["valid"] is False

    issued = crud_session.issue_token(db, session.id, teacher.id)
    verdict = crud_session.validate_token(db, issued["token"])
    assert verdict["valid"] is True
    assert verdict["session"]["session_id"] == session.id
    assert verdict["session"]["has_anchor"] is False


def test_validate_token_expired(db, teacher, frozen_clock, monkeypatch):
    monkeypatch.setattr(settings, "SESSION_TIMEOUT_SECONDS", None)
    session = open_session(db, teacher)
    issued = crud_session.issue_token(db, session.id, teacher.id)

    frozen_clock.advance(minutes=5)
    assert crud_session.validate_token(db, issued["token"])["valid"] is True

    frozen_clock.advance(seconds=1)
    verdict = crud_session.validate_token(db, issued["token"])
    assert verdict == {"valid": False, "kind": "TOKEN_EXPIRED", "reason": "QR code has expired"}


def test_validate_token_closed_session(db, teacher, frozen_clock):
    session = open_session(db, teacher)
    issued = crud_session.issue_token(db, session.id, teacher.id)

    frozen_clock.advance(seconds=121)
    assert crud_session.validate_token(db, issued["token"])["kind"] == "SESSION_CLOSED"
    # validation never closes anything
    db.refresh(session)
    assert session.is_open is True

    crud_session.close_session(db, session.id, teacher.id)
    assert crud_session.validate_token(db, issued["token"])["kind"] == "SESSION_CLOSED"


def test_validation_is_not_consuming(db, teacher):
    session = open_session(db, teacher)
    issued = crud_session.issue_token(db, session.id, teacher.id)
    assert crud_session.validate_token(db, issued["token"]) == crud_session.validate_token(db, issued["token"])


def test_close_runs_absence_sweep(db, teacher, make_user):
    session = open_session(db, teacher)
    present = make_user()
    make_user()
    make_user()
    make_user(department="ECE")
    crud_attendance.check_in(db, session.id, present.id)

    result = crud_session.close_session(db, session.id, teacher.id)

    assert result == {"ok": True, "absent_marked": 2}
    statuses = sorted(r.status for r in db.query(AttendanceRecord).filter_by(session_id=session.id))
    assert statuses == ["absent", "absent", "present"]


def test_lazy_expiry_on_access(db, teacher, student, frozen_clock):
    session = open_session(db, teacher)
    frozen_clock.advance(seconds=121)

    with pytest.raises(StateConflict) as excinfo:
        crud_session.ensure_open(db, session.id)
    assert excinfo.value.kind == ErrorKind.SESSION_CLOSED

    db.refresh(session)
    assert session.is_open is False
    assert session.closed_at == frozen_clock.now
    # the expiry close swept the cohort too
    record = crud_attendance.get_record(db, session.id, student.id)
    assert record.status == "absent"


def test_reconcile_closed_session_is_idempotent(db, teacher, make_user):
    session = open_session(db, teacher)
    make_user()
    crud_session.close_session(db, session.id, teacher.id)
    make_user()  # joined the cohort after close

    assert crud_session.reconcile_session(db, session.id, teacher.id)["absent_marked"] == 1
    assert crud_session.reconcile_session(db, session.id, teacher.id)["absent_marked"] == 0


def test_reconcile_open_session_closes_it(db, teacher, student):
    session = open_session(db, teacher)
    result = crud_session.reconcile_session(db, session.id, teacher.id)
    db.refresh(session)
    assert result["absent_marked"] == 1
    assert session.is_open is False
