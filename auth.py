# auth.py
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

import models
import schemas
from config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY
from database import get_db
from errors import Unauthenticated

logger = logging.getLogger(__name__)

# OAuth2 setup; missing tokens are reported by get_token_data
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


# Password functions
def verify_password(plain_password, hashed_password):
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))

def get_password_hash(password):
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

def authenticate_user(db: Session, email: str, password: str):
    user = db.query(models.User).filter(models.User.email == email.lower()).first()
    if not user:
        return None
    if not verify_password(password, user.password):
        return None
    return user


# Token functions
def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None):
    """Issue a signed token for ``user_id``.

    Returns the encoded token and its lifetime in seconds.
    """
    expires_delta = expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    now = datetime.utcnow()
    to_encode = {
        "sub": str(user_id),
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + expires_delta,
    }
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt, int(expires_delta.total_seconds())

def issue_token_response(user: models.User):
    access_token, expires_in = create_access_token(user.id)
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_in": expires_in,
        "user": user,
    }

def decode_token(token: str) -> schemas.TokenData:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.PyJWTError:
        raise Unauthenticated()
    sub = payload.get("sub")
    jti = payload.get("jti")
    if sub is None or jti is None or not str(sub).isdigit():
        raise Unauthenticated()
    return schemas.TokenData(
        user_id=int(sub),
        jti=jti,
        expires_at=datetime.utcfromtimestamp(payload["exp"]),
    )

def is_revoked(db: Session, jti: str) -> bool:
    return db.query(models.RevokedToken).filter(models.RevokedToken.jti == jti).first() is not None

def revoke_token(db: Session, token_data: schemas.TokenData):
    # Expired entries can never be presented again
    db.query(models.RevokedToken).filter(
        models.RevokedToken.expires_at < datetime.utcnow()
    ).delete(synchronize_session=False)
    db.add(models.RevokedToken(
        jti=token_data.jti,
        user_id=token_data.user_id,
        expires_at=token_data.expires_at,
    ))
    logger.info("Revoked token for user %s", token_data.user_id)


# Dependencies
def get_token_data(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    if not token:
        raise Unauthenticated()
    token_data = decode_token(token)
    if is_revoked(db, token_data.jti):
        raise Unauthenticated()
    return token_data

def get_current_user(token_data: schemas.TokenData = Depends(get_token_data), db: Session = Depends(get_db)):
    user = db.query(models.User).filter(models.User.id == token_data.user_id).first()
    if user is None:
        raise Unauthenticated()
    return user
