import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from database import User, get_db
from date_ranges import utcnow
from errors import NotFoundError, ValidationFailed
from image_host import upload_image
from schemas import UserOut
from security import get_current_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _load_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found", error="User not found")
    return user


@router.get("/current-user")
def current_user(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return {"user": UserOut.model_validate(_load_user(db, user_id))}


@router.put("/update")
async def update_user(
    name: Optional[str] = Form(None),
    profile_picture: Optional[UploadFile] = File(None, alias="profilePicture"),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    user = _load_user(db, user_id)

    if name and (not name.strip() or len(name) > 255):
        raise ValidationFailed("Invalid name", error="Invalid name")

    changed = False
    if name and name.strip():
        user.name = name.strip()
        changed = True

    if profile_picture is not None:
        data = await profile_picture.read()
        if data:
            user.profile_picture = upload_image(data, profile_picture.content_type, folder="images")
            changed = True

    if not changed:
        raise ValidationFailed("No data to update", error="No data to update")

    user.updated_at = utcnow()
    db.commit()
    db.refresh(user)
    return {"message": "User updated successfully", "user": UserOut.model_validate(user)}
