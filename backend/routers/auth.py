"""Authentication router: register, login, current user."""

import logging
from typing import Annotated
from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

import models
import schemas
import auth
from database import get_db
from dependencies import get_current_user
from utils.rate_limiter import auth_rate_limiter
from utils.validation import get_user_by_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def _issue_token(user: models.User) -> dict:
    access_token_expires = timedelta(minutes=auth.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = auth.create_access_token(
        data={"sub": user.email}, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/register", response_model=schemas.Token, dependencies=[Depends(auth_rate_limiter)])
def register_user(
    user: schemas.UserCreate,
    db: Session = Depends(get_db)
):
    # Check for existing user
    db_user = get_user_by_email(db, email=user.email)
    if db_user:
        raise HTTPException(status_code=400, detail="Email already registered")

    # Create user
    hashed_password = auth.get_password_hash(user.password)
    db_user = models.User(email=user.email, hashed_password=hashed_password, full_name=user.full_name)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)

    # Contacts other accounts created with this email now refer to the new account,
    # so their shared expenses become visible from its side
    linked = db.query(models.Friend).filter(
        models.Friend.email == user.email,
        models.Friend.linked_user_id == None
    ).update({"linked_user_id": db_user.id})
    db.query(models.TripMember).filter(
        models.TripMember.email == user.email,
        models.TripMember.user_id == None
    ).update({"user_id": db_user.id})
    db.commit()
    if linked:
        logger.info(f"Linked {linked} existing contact(s) to new user {db_user.id}")

    return _issue_token(db_user)


@router.post("/token", response_model=schemas.Token, dependencies=[Depends(auth_rate_limiter)])
def login_for_access_token(form_data: Annotated[OAuth2PasswordRequestForm, Depends()], db: Session = Depends(get_db)):
    user = get_user_by_email(db, form_data.username)
    if not user or not auth.verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _issue_token(user)


@router.get("/users/me", response_model=schemas.User)
async def read_users_me(current_user: Annotated[models.User, Depends(get_current_user)]):
    return current_user
