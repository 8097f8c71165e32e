import logging
import re
from typing import Optional

import repository
from db import get_session, get_lock, request_lock_name
from errors import NotFoundError, ValidationError
from models import User
from occupancy import recompute

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r"^\+?[\d\s\-\(\)]{10,15}$")


def _check_name(name) -> str:
    if not isinstance(name, str) or not 2 <= len(name.strip()) <= 50:
        raise ValidationError("Name must be between 2 and 50 characters")
    return name.strip()


def _check_phone(phone) -> str:
    if not isinstance(phone, str) or not PHONE_RE.match(phone.strip()):
        raise ValidationError("Phone number must be valid")
    return phone.strip()


def create_user(name: str, phone: Optional[str] = None) -> User:
    name = _check_name(name)
    if phone is not None:
        phone = _check_phone(phone)
    with get_session() as session:
        user = User(name=name, phone=phone)
        session.add(user)
        session.commit()
        session.refresh(user)
    return user


def get_profile(user_id: int) -> User:
    with get_session() as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("user not found")
        return user


def update_profile(user_id: int, name: Optional[str] = None, phone: Optional[str] = None) -> User:
    """Change name and/or phone; fields left as ``None`` are kept."""
    if name is not None:
        name = _check_name(name)
    if phone is not None:
        phone = _check_phone(phone)
    with get_session() as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("user not found")
        if name is not None:
            user.name = name
        if phone is not None:
            user.phone = phone
        session.add(user)
        session.commit()
        session.refresh(user)
    return user


def delete_user_account(user_id: int) -> None:
    """Drop the user's votes, cancel their active requests, then remove the user.

    Each vote is removed under its request's lock in the same transaction as
    that request's recompute, so a failure leaves the vote and the counter
    untouched.
    """
    with get_session() as session:
        if session.get(User, user_id) is None:
            raise NotFoundError("user not found")
        touched = repository.request_ids_voted_by(session, user_id)

    for request_id in touched:
        with get_lock(request_lock_name(request_id)):
            with get_session() as session:
                # False when the owner deleted the request (and its votes) meanwhile
                if repository.delete_vote(session, user_id, request_id):
                    recompute(session, request_id)
                session.commit()

    with get_session() as session:
        cancelled = repository.cancel_active_requests_for_owner(session, user_id)
        user = session.get(User, user_id)
        if user is not None:
            session.delete(user)
        session.commit()
    logger.info("Deleted account %s (%s requests cancelled, %s requests lost a vote)",
                user_id, cancelled, len(touched))
