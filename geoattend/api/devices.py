from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from geoattend.api.deps import get_db, require_student
from geoattend.crud import device as crud_device
from geoattend.db.models.user import User
from geoattend.schemas.device import (
    DeviceFingerprintIn, DeviceRegistration, DeviceRef, DeviceSecurityCheck,
    DeviceSecurityResult, SimultaneousUsageResult, OwnershipLockResult,
    UnlockRequest, DeviceOut,
)

router = APIRouter()


@router.post("/register", response_model=DeviceRegistration)
def register_device(
    fingerprint: DeviceFingerprintIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student)
):
    return crud_device.register_device(db, current_user.id, fingerprint)


@router.get("/", response_model=List[DeviceOut])
def my_devices(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student)
):
    return crud_device.list_student_devices(db, current_user.id)


@router.post("/verify")
def verify_ownership(
    body: DeviceRef,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student)
):
    crud_device.check_ownership(db, current_user.id, body.device_id)
    return {"valid": True}


@router.post("/security-check", response_model=DeviceSecurityResult)
def security_check(
    body: DeviceSecurityCheck,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student)
):
    return crud_device.check_device_security(db, current_user.id, body.device_id, body.session_id)


@router.post("/lock-check", response_model=OwnershipLockResult)
def lock_check(
    body: DeviceRef,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student)
):
    return crud_device.check_device_ownership_lock(db, body.device_id, current_user.id)


@router.post("/simultaneous", response_model=SimultaneousUsageResult)
def simultaneous_usage(
    body: DeviceRef,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student)
):
    return crud_device.detect_simultaneous_usage(db, current_user.id, body.device_id)


@router.post("/{device_id}/trust", response_model=DeviceOut)
def trust_device(
    device_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student)
):
    return crud_device.trust_device(db, current_user.id, device_id)


@router.post("/{device_id}/unlock-request")
def unlock_request(
    device_id: str,
    body: UnlockRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student)
):
    return crud_device.request_device_unlock(db, current_user.id, device_id, body.reason)


@router.post("/logout-all")
def logout_all(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student)
):
    return crud_device.force_logout_all_devices(db, current_user.id)
