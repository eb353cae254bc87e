import pytest

from geoattend.core.errors import ErrorKind, NotAuthorized, NotFound, SecurityViolation, StateConflict
from geoattend.core.fingerprint import compute_device_id
from geoattend.crud import alert as crud_alert
from geoattend.crud import device as crud_device
from geoattend.db.models.device import DeviceFingerprint
from geoattend.db.models.security_alert import SecurityAlert
from tests.conftest import CHROME_WINDOWS, SAFARI_IPHONE


def alerts_for(db, student_id):
    return db.query(SecurityAlert).filter(SecurityAlert.student_id == student_id).all()


def test_first_device_is_trusted(db, student, frozen_clock):
    result = crud_device.register_device(db, student.id, CHROME_WINDOWS)

    assert result == {"device_id": compute_device_id(CHROME_WINDOWS), "is_new": True, "is_trusted": True}
    device = crud_device.get_device(db, result["device_id"])
    assert device.student_id == student.id
    assert device.device_name == "Chrome on Windows PC"
    assert device.first_seen == frozen_clock.now
    assert alerts_for(db, student.id) == []


def test_second_device_raises_new_device_alert(db, student):
    crud_device.register_device(db, student.id, CHROME_WINDOWS)
    result = crud_device.register_device(db, student.id, SAFARI_IPHONE)

    assert result["is_new"] is True
    assert result["is_trusted"] is False
    [alert] = alerts_for(db, student.id)
    assert alert.type == "new_device"
    assert alert.severity == "medium"
    assert alert.details["old_device"] == "Chrome on Windows PC"


def test_reregistering_own_device_refreshes_it(db, student, frozen_clock):
    device_id = crud_device.register_device(db, student.id, CHROME_WINDOWS)["device_id"]
    crud_device.get_device(db, device_id).is_active = False
    db.commit()
    frozen_clock.advance(hours=1)

    result = crud_device.register_device(db, student.id, CHROME_WINDOWS)

    assert result == {"device_id": device_id, "is_new": False, "is_trusted": True}
    device = crud_device.get_device(db, device_id)
    assert device.is_active is True
    assert device.last_seen == frozen_clock.now
    assert db.query(DeviceFingerprint).count() == 1


def test_device_is_locked_to_its_first_owner(db, make_user):
    owner, other = make_user(), make_user()
    device_id = crud_device.register_device(db, owner.id, CHROME_WINDOWS)["device_id"]

    with pytest.raises(SecurityViolation) as excinfo:
        crud_device.register_device(db, other.id, CHROME_WINDOWS)

    err = excinfo.value
    assert err.kind == ErrorKind.DEVICE_OWNERSHIP_VIOLATION
    assert err.to_dict()["purge_client_state"] is True
    assert err.extra["device_id"] == device_id

    [to_violator] = alerts_for(db, other.id)
    [to_owner] = alerts_for(db, owner.id)
    assert (to_violator.type, to_violator.severity) == ("account_sharing_attempt", "critical")
    assert (to_owner.type, to_owner.severity) == ("unauthorized_device_access", "critical")
    assert to_owner.details["violating_student"] == other.id

    device = crud_device.get_device(db, device_id)
    assert device.student_id == owner.id
    assert device.suspicious_activity_count == 1
    assert crud_device.list_student_devices(db, other.id) == []


def test_unknown_student_cannot_register(db, teacher):
    with pytest.raises(NotFound) as excinfo:
        crud_device.register_device(db, teacher.id, CHROME_WINDOWS)
    assert excinfo.value.kind == ErrorKind.STUDENT_NOT_FOUND


def test_check_ownership(db, make_user):
    owner, other = make_user(), make_user()
    device_id = crud_device.register_device(db, owner.id, CHROME_WINDOWS)["device_id"]

    assert crud_device.check_ownership(db, owner.id, device_id)["valid"] is True

    with pytest.raises(NotFound) as excinfo:
        crud_device.check_ownership(db, owner.id, "device_missing")
    assert excinfo.value.kind == ErrorKind.DEVICE_NOT_FOUND

    with pytest.raises(NotAuthorized) as excinfo:
        crud_device.check_ownership(db, other.id, device_id)
    assert excinfo.value.kind == ErrorKind.UNAUTHORIZED_DEVICE
    assert len(alerts_for(db, other.id)) == 1
    assert len(alerts_for(db, owner.id)) == 1


def test_inactive_device_fails_ownership_check(db, student):
    device_id = crud_device.register_device(db, student.id, CHROME_WINDOWS)["device_id"]
    crud_device.force_logout_all_devices(db, student.id)

    with pytest.raises(StateConflict) as excinfo:
        crud_device.check_ownership(db, student.id, device_id)
    assert excinfo.value.kind == ErrorKind.DEVICE_INACTIVE

    latest = crud_alert.get_security_alerts(db, student.id)[0]
    assert (latest.type, latest.severity) == ("unauthorized_device_access", "high")
    assert latest.device_id == device_id
    assert crud_device.get_device(db, device_id).suspicious_activity_count == 1


def test_security_check_warns_about_recent_second_device(db, student, frozen_clock):
    crud_device.register_device(db, student.id, CHROME_WINDOWS)
    frozen_clock.advance(hours=2)
    phone = crud_device.register_device(db, student.id, SAFARI_IPHONE)["device_id"]

    result = crud_device.check_device_security(db, student.id, phone, session_id=7)

    assert result["is_valid"] is True
    assert result["is_trusted"] is False
    assert len(result["warnings"]) == 2
    high = [a for a in alerts_for(db, student.id) if a.type == "multiple_devices_attendance"]
    assert len(high) == 1
    assert high[0].severity == "high"
    assert high[0].details["session_id"] == 7


def test_security_check_ignores_old_devices(db, student, frozen_clock):
    laptop = crud_device.register_device(db, student.id, CHROME_WINDOWS)["device_id"]
    crud_device.trust_device(db, student.id, laptop)
    frozen_clock.advance(days=2)
    phone = crud_device.register_device(db, student.id, SAFARI_IPHONE)["device_id"]
    crud_device.trust_device(db, student.id, phone)

    result = crud_device.check_device_security(db, student.id, phone, session_id=1)
    assert result["warnings"] == []


def test_simultaneous_usage_deactivates_other_devices(db, student, frozen_clock):
    laptop = crud_device.register_device(db, student.id, CHROME_WINDOWS)["device_id"]
    frozen_clock.advance(minutes=1)
    phone = crud_device.register_device(db, student.id, SAFARI_IPHONE)["device_id"]

    result = crud_device.detect_simultaneous_usage(db, student.id, phone)

    assert result["violation"] is True
    assert result["deactivated_count"] == 1
    assert crud_device.get_device(db, laptop).is_active is False
    assert crud_device.get_device(db, phone).is_active is True


def test_simultaneous_usage_outside_window(db, student, frozen_clock):
    crud_device.register_device(db, student.id, CHROME_WINDOWS)
    frozen_clock.advance(minutes=10)
    phone = crud_device.register_device(db, student.id, SAFARI_IPHONE)["device_id"]

    assert crud_device.detect_simultaneous_usage(db, student.id, phone) == {"violation": False, "deactivated_count": 0}


def test_trust_device(db, make_user):
    owner, other = make_user(), make_user()
    crud_device.register_device(db, owner.id, CHROME_WINDOWS)
    phone = crud_device.register_device(db, owner.id, SAFARI_IPHONE)["device_id"]

    assert crud_device.trust_device(db, owner.id, phone).is_trusted is True

    with pytest.raises(NotAuthorized):
        crud_device.trust_device(db, other.id, phone)
    with pytest.raises(NotFound):
        crud_device.trust_device(db, owner.id, "device_missing")


def test_force_logout_all_devices(db, student):
    crud_device.register_device(db, student.id, CHROME_WINDOWS)
    crud_device.register_device(db, student.id, SAFARI_IPHONE)

    result = crud_device.force_logout_all_devices(db, student.id)

    assert result == {"success": True, "deactivated_count": 2}
    for device in crud_device.list_student_devices(db, student.id):
        assert device.is_active is False
        assert device.is_trusted is False
    assert crud_alert.get_security_alerts(db, student.id)[0].severity == "critical"


def test_ownership_lock_probe(db, make_user):
    owner, other = make_user(), make_user()
    device_id = crud_device.register_device(db, owner.id, CHROME_WINDOWS)["device_id"]

    assert crud_device.check_device_ownership_lock(db, "device_unknown", other.id)["can_proceed"] is True
    assert crud_device.check_device_ownership_lock(db, device_id, owner.id)["locked"] is False

    locked = crud_device.check_device_ownership_lock(db, device_id, other.id)
    assert locked["locked"] is True
    assert locked["can_proceed"] is False
    assert locked["kind"] == "DEVICE_OWNERSHIP_VIOLATION"
    assert len(alerts_for(db, other.id)) == 1


def test_unlock_request_files_an_alert(db, make_user):
    owner, other = make_user(), make_user()
    device_id = crud_device.register_device(db, owner.id, CHROME_WINDOWS)["device_id"]

    result = crud_device.request_device_unlock(db, other.id, device_id, "bought it second hand")

    assert result["success"] is True
    [alert] = alerts_for(db, other.id)
    assert alert.type == "device_ownership_violation"
    assert "bought it second hand" in alert.message
    # the device itself is untouched
    assert crud_device.get_device(db, device_id).student_id == owner.id


def test_alert_read_and_resolve(db, teacher, make_user):
    owner, other = make_user(), make_user()
    crud_device.register_device(db, owner.id, CHROME_WINDOWS)
    with pytest.raises(SecurityViolation):
        crud_device.register_device(db, other.id, CHROME_WINDOWS)
    [alert] = alerts_for(db, owner.id)

    with pytest.raises(NotAuthorized) as excinfo:
        crud_alert.mark_alert_read(db, alert.id, other.id)
    assert excinfo.value.kind == ErrorKind.NOT_ALERT_OWNER

    assert crud_alert.mark_alert_read(db, alert.id, owner.id).is_read is True

    resolved = crud_alert.resolve_alert(db, alert.id, teacher.id)
    assert resolved.is_resolved is True
    assert resolved.resolved_by_teacher_id == teacher.id
    assert resolved.message == alert.message

    with pytest.raises(NotFound):
        crud_alert.resolve_alert(db, 9999, teacher.id)
