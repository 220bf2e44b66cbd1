from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lms.dependencies import get_db, require_user
from lms.models import User
from lms.schemas.account import PasswordChange, ProfileUpdate
from lms.services.registration import change_password, update_profile

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/profile", name="user.profile")
def get_profile(current_user: User = Depends(require_user)):
    return current_user.to_dict()


@router.patch("/profile", name="user.update_profile")
def patch_profile(
    payload: ProfileUpdate,
    current_user: User = Depends(require_user),
    session: Session = Depends(get_db),
):
    return update_profile(session, current_user, payload).to_dict()


@router.patch("/password", name="user.change_password")
def patch_password(
    payload: PasswordChange,
    current_user: User = Depends(require_user),
    session: Session = Depends(get_db),
):
    change_password(session, current_user, payload.current_password, payload.new_password)
    return {"success": True}
