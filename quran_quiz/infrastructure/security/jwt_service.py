from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import jwt

from quran_quiz.config import settings


def create_access_token(user_id: int, role: str, expires_minutes: int = 60 * 24) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, secret: Optional[str] = None) -> Dict:
    """Raises jwt.PyJWTError when the token is invalid or expired."""
    return jwt.decode(token, secret or settings.jwt_secret, algorithms=[settings.jwt_algorithm])
