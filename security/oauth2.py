from fastapi import Depends, HTTPException, status
from typing import Annotated, Optional
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session
import jwt

from security.token_jwt import SECRET_KEY, ALGORITHM
from models import User
from database import get_session

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login")  # only used for docs; login uses JSON body
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login", auto_error=False)


def _user_from_token(token: str, db: Session) -> User:
    cred_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id = payload.get("user_id")
        if user_id is None:
            raise cred_exc
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired", headers={"WWW-Authenticate": "Bearer"})
    except jwt.InvalidTokenError:
        raise cred_exc

    # the user may have been deleted since the token was issued
    user = db.get(User, user_id)
    if not user:
        raise cred_exc
    return user


def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Session = Depends(get_session),
) -> User:
    return _user_from_token(token, db)


def get_optional_user(
    token: Annotated[Optional[str], Depends(optional_oauth2_scheme)],
    db: Session = Depends(get_session),
) -> Optional[User]:
    if not token:
        return None
    return _user_from_token(token, db)
