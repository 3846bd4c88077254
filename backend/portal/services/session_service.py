import time
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from portal.config import settings
from portal.models.user import User
from portal.utils.security import generate_session_token, hash_password, needs_rehash, verify_password


class SessionService:
    def __init__(self):
        self._active_tokens: dict[str, tuple[int, float]] = {}  # token -> (user_id, expires_at)

    def _cleanup_expired(self):
        now = time.time()
        self._active_tokens = {
            t: entry for t, entry in self._active_tokens.items() if entry[1] > now
        }

    def register(
        self,
        db: Session,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        locale: str = "fr",
        role: str = "CANDIDATE",
    ) -> User | None:
        email = email.strip().lower()
        if db.query(User).filter(User.email == email).first():
            return None

        user = User(
            email=email,
            password_hash=hash_password(password),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            role=role,
            locale=locale,
            created_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    def login(self, db: Session, email: str, password: str) -> dict | None:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user or not verify_password(user.password_hash, password):
            return None

        if needs_rehash(user.password_hash):
            user.password_hash = hash_password(password)
            db.commit()

        token = generate_session_token()
        self._active_tokens[token] = (user.id, time.time() + settings.session_ttl_seconds)
        return {"token": token, "expires_in_seconds": settings.session_ttl_seconds}

    def user_id_for(self, token: str) -> int | None:
        self._cleanup_expired()
        entry = self._active_tokens.get(token)
        return entry[0] if entry else None

    def logout(self, token: str):
        self._active_tokens.pop(token, None)

    def clear(self):
        self._active_tokens.clear()


session_service = SessionService()
