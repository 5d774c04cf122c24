"""Notifications router: the in-app inbox of the current user."""

from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user


router = APIRouter(prefix="/notifications", tags=["notifications"])


def _notification_response(notification: models.Notification) -> schemas.Notification:
    # Built by hand: "metadata" is reserved on declarative models
    return schemas.Notification(
        id=notification.id,
        user_id=notification.user_id,
        sender_id=notification.sender_id,
        trip_id=notification.trip_id,
        title=notification.title,
        message=notification.message,
        type=notification.type,
        metadata=notification.details,
        is_read=bool(notification.is_read)
    )


@router.get("", response_model=list[schemas.Notification])
def read_notifications(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    unread_only: bool = False,
    limit: int = 50
):
    query = db.query(models.Notification).filter(models.Notification.user_id == current_user.id)
    if unread_only:
        query = query.filter(models.Notification.is_read == False)
    notifications = query.order_by(
        models.Notification.created_at.desc(), models.Notification.id.desc()
    ).limit(limit).all()
    return [_notification_response(n) for n in notifications]


@router.get("/unread_count")
def get_unread_count(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    count = db.query(models.Notification).filter(
        models.Notification.user_id == current_user.id,
        models.Notification.is_read == False
    ).count()
    return {"count": count}


@router.post("/{notification_id}/read", response_model=schemas.Notification)
def mark_notification_read(
    notification_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    notification = db.query(models.Notification).filter(
        models.Notification.id == notification_id,
        models.Notification.user_id == current_user.id
    ).first()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")

    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return _notification_response(notification)


@router.post("/read_all")
def mark_all_read(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    updated = db.query(models.Notification).filter(
        models.Notification.user_id == current_user.id,
        models.Notification.is_read == False
    ).update({models.Notification.is_read: True}, synchronize_session=False)
    db.commit()
    return {"updated": updated}
