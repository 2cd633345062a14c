"""Authentication and the explicit user session passed to every operation."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import Optional, Set

import bcrypt
from sqlalchemy.exc import SQLAlchemyError

from database import Profile, SessionLocal, User
from errors import AuthError, DataAccessError, ValidationError
from logger import get_logger, set_user_context

log = get_logger("auth")

MIN_PASSWORD_LENGTH = 6
RESET_REQUESTED_MESSAGE = "If an account exists for that email, a password reset link has been sent."


@dataclass(frozen=True)
class UserSession:
    """Identity of the signed-in user. Established at sign-in, dropped at sign-out."""

    user_id: str
    email: str
    token: str = field(default_factory=lambda: secrets.token_urlsafe(16), compare=False, repr=False)


@dataclass(frozen=True)
class StatusMessage:
    """Two-valued banner shown by the settings flows."""

    type: str  # 'success' or 'error'
    text: str

    @property
    def ok(self) -> bool:
        return self.type == "success"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def validate_new_password(new_password: str, confirm_password: str) -> None:
    """Client-side password checks; raise before anything reaches the store."""
    if new_password != confirm_password:
        raise ValidationError("Passwords do not match")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def _normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError("Please enter a valid email address")
    return email


class AuthService:
    """Sign-up/sign-in against the users table, plus the settings-page actions."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or SessionLocal
        self._active: Set[str] = set()

    # --- Sessions ---

    def sign_up(self, email: str, password: str, full_name: str = "", confirm_password: Optional[str] = None) -> UserSession:
        email = _normalize_email(email)
        validate_new_password(password, password if confirm_password is None else confirm_password)

        db = self._session_factory()
        try:
            if db.query(User).filter(User.email == email).first():
                raise AuthError("User already registered")
            user = User(email=email, password_hash=hash_password(password))
            db.add(user)
            db.flush()
            db.add(Profile(id=user.id, full_name=full_name.strip()))
            db.commit()
            user_id = user.id
        except SQLAlchemyError as exc:
            db.rollback()
            raise DataAccessError(str(exc)) from exc
        finally:
            db.close()

        log.info("Registered new user %s", user_id)
        return self._open_session(user_id, email)

    def sign_in(self, email: str, password: str) -> UserSession:
        email = (email or "").strip().lower()
        db = self._session_factory()
        try:
            user = db.query(User).filter(User.email == email).first()
        except SQLAlchemyError as exc:
            raise DataAccessError(str(exc)) from exc
        finally:
            db.close()

        if user is None or not check_password(password or "", user.password_hash):
            log.warning("Failed sign-in attempt for %s", email)
            raise AuthError("Invalid email or password")
        return self._open_session(user.id, user.email)

    def sign_out(self, session: Optional[UserSession]) -> None:
        if session is None:
            return
        self._active.discard(session.token)
        set_user_context(None)
        log.info("Signed out user %s", session.user_id)

    def is_active(self, session: Optional[UserSession]) -> bool:
        return session is not None and session.token in self._active

    def _open_session(self, user_id: str, email: str) -> UserSession:
        session = UserSession(user_id=user_id, email=email)
        self._active.add(session.token)
        set_user_context(user_id)
        return session

    def request_password_reset(self, email: str) -> StatusMessage:
        """Forgot-password flow. The reply never reveals whether the account exists."""
        try:
            email = _normalize_email(email)
        except ValidationError as exc:
            return StatusMessage("error", str(exc))
        log.info("Password reset requested for %s", email)
        return StatusMessage("success", RESET_REQUESTED_MESSAGE)

    # --- Settings ---

    def get_profile(self, session: UserSession) -> dict:
        db = self._session_factory()
        try:
            profile = db.get(Profile, session.user_id)
            full_name = profile.full_name if profile else ""
        except SQLAlchemyError:
            log.exception("Error fetching profile")
            full_name = ""
        finally:
            db.close()
        return {"full_name": full_name or "", "email": session.email}

    def update_profile(self, session: UserSession, full_name: str) -> StatusMessage:
        db = self._session_factory()
        try:
            profile = db.get(Profile, session.user_id)
            if profile is None:
                profile = Profile(id=session.user_id)
                db.add(profile)
            profile.full_name = (full_name or "").strip()
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            log.exception("Error updating profile")
            return StatusMessage("error", str(exc))
        finally:
            db.close()
        return StatusMessage("success", "Profile updated successfully!")

    def update_password(self, session: UserSession, new_password: str, confirm_password: str) -> StatusMessage:
        try:
            validate_new_password(new_password, confirm_password)
        except ValidationError as exc:
            return StatusMessage("error", str(exc))

        db = self._session_factory()
        try:
            user = db.get(User, session.user_id)
            if user is None:
                return StatusMessage("error", "User not found")
            user.password_hash = hash_password(new_password)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            log.exception("Error updating password")
            return StatusMessage("error", str(exc))
        finally:
            db.close()
        log.info("Password updated")
        return StatusMessage("success", "Password updated successfully!")

    def delete_account(self, session: UserSession, confirmed: bool = False) -> StatusMessage:
        """Remove the user; the store's ON DELETE rules take the user's rows with it."""
        if not confirmed:
            return StatusMessage("error", "Account deletion was not confirmed")

        db = self._session_factory()
        try:
            user = db.get(User, session.user_id)
            if user is not None:
                db.delete(user)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            log.exception("Error deleting account")
            return StatusMessage("error", "Failed to delete account")
        finally:
            db.close()

        log.info("Deleted account %s", session.user_id)
        self.sign_out(session)
        return StatusMessage("success", "Account deleted")
