import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import ReportFrequency, ReportSettings, User, get_db, transactional
from date_ranges import start_of_next_month, utcnow
from errors import AuthenticationError, ConflictError
from schemas import LoginRequest, RegisterRequest, UserOut
from security import hash_password, sign_access_token, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=201)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
    if db.query(User).filter(User.email == req.email).first():
        raise ConflictError("A user with this email already exists", error="User already exists")

    now = utcnow()
    try:
        with transactional(db):
            user = User(name=req.name, email=req.email, password_hash=hash_password(req.password))
            db.add(user)
            db.flush()
            db.add(
                ReportSettings(
                    user_id=user.id,
                    frequency=ReportFrequency.MONTHLY,
                    is_enabled=True,
                    next_report_date=start_of_next_month(now),
                    last_sent_date=None,
                )
            )
    except IntegrityError as e:
        raise ConflictError("A user with this email already exists", error="User already exists") from e

    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return {"message": "User registered successfully", "data": {"user": UserOut.model_validate(user)}}


@router.post("/login")
def login(req: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == req.email).first()
    if not user or not verify_password(req.password, user.password_hash):
        logger.info("Failed login attempt for %s", req.email)
        raise AuthenticationError("Invalid email or password", error="Invalid email or password")

    token, expires_at = sign_access_token(user.id)
    return {
        "message": "User logged in successfully",
        "user": UserOut.model_validate(user),
        "accessToken": token,
        "expiresAt": expires_at,
    }
