"""Owner-side operations on ride requests: post, edit, browse, cancel, delete."""
from datetime import datetime, date, timezone
from typing import List, Optional
import logging
import re

import repository
from config import MAX_PERSONS, MIN_PERSONS
from db import get_session, get_lock, request_lock_name
from errors import InvalidStateError, NotFoundError, PermissionDeniedError, ValidationError
from models import (RideRequest, User, Vote, CAR_TYPES, REQUEST_ACTIVE, REQUEST_CANCELLED,
                    REQUEST_COMPLETED, REQUEST_STATUSES)
from occupancy import recompute

logger = logging.getLogger(__name__)

TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
MAX_PAGE_SIZE = 50
EDITABLE_STATUSES = (REQUEST_ACTIVE, REQUEST_COMPLETED)


def _check_location(value, label):
    if not isinstance(value, str) or not 2 <= len(value.strip()) <= 100:
        raise ValidationError(f"{label} location must be between 2 and 100 characters")
    return value.strip()


def _parse_travel_date(value) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, datetime.min.time())
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError:
            raise ValidationError("Date must be a valid ISO date")
    if parsed.tzinfo is not None:
        # stored and swept as naive UTC
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    if parsed.date() < datetime.utcnow().date():
        raise ValidationError("Date cannot be in the past")
    return parsed


def _check_time(value) -> str:
    if not isinstance(value, str) or not TIME_RE.match(value):
        raise ValidationError("Time must be in HH:MM format")
    return value


def _check_max_persons(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not MIN_PERSONS <= value <= MAX_PERSONS:
        raise ValidationError(f"Max persons must be between {MIN_PERSONS} and {MAX_PERSONS}")
    return value


def _check_car_type(value) -> str:
    if value not in CAR_TYPES:
        raise ValidationError("Car type must be sedan, suv, hatchback, or any")
    return value


FIELD_CHECKS = {
    "origin": lambda v: _check_location(v, "From"),
    "destination": lambda v: _check_location(v, "To"),
    "travel_date": _parse_travel_date,
    "travel_time": _check_time,
    "max_persons": _check_max_persons,
    "car_type": _check_car_type,
}


def _check_owner(req: RideRequest, owner_id: int):
    if req.owner_id != owner_id:
        raise PermissionDeniedError("only the request owner can do this")


def create_request(owner_id: int, origin: str, destination: str, travel_date, travel_time: str,
                   max_persons: int, car_type: str = "any") -> RideRequest:
    fields = dict(origin=origin, destination=destination, travel_date=travel_date,
                  travel_time=travel_time, max_persons=max_persons, car_type=car_type)
    fields = {name: FIELD_CHECKS[name](value) for name, value in fields.items()}
    with get_session() as session:
        if session.get(User, owner_id) is None:
            raise NotFoundError("user not found")
        req = repository.create_request(session, owner_id=owner_id, **fields)
        session.commit()
    logger.info("User %s posted request %s (%s -> %s)", owner_id, req.id, req.origin, req.destination)
    return req


def update_request(owner_id: int, request_id, **changes) -> RideRequest:
    """Edit an active or completed request.

    Only the keys of ``FIELD_CHECKS`` may change. Capacity cannot drop below
    the seats already taken; a capacity change re-derives the status.
    """
    unknown = set(changes) - set(FIELD_CHECKS)
    if unknown:
        raise ValidationError(f"cannot update {', '.join(sorted(unknown))}")
    changes = {name: FIELD_CHECKS[name](value) for name, value in changes.items()}
    request_id = repository.coerce_uuid(request_id, "request id")
    with get_lock(request_lock_name(request_id)):
        with get_session() as session:
            req = repository.get_request(session, request_id, for_update=True)
            _check_owner(req, owner_id)
            if req.status not in EDITABLE_STATUSES:
                raise InvalidStateError(f"request is {req.status} and cannot be edited")
            if changes.get("max_persons", req.max_persons) < req.current_occupancy:
                raise ValidationError(
                    f"Max persons cannot be below the {req.current_occupancy} seats already taken"
                )
            for name, value in changes.items():
                setattr(req, name, value)
            session.add(req)
            session.flush()
            req = recompute(session, request_id)
            session.commit()
    return req


def get_request(request_id) -> RideRequest:
    with get_session() as session:
        return repository.get_request(session, request_id)


def search_requests(origin: Optional[str] = None, destination: Optional[str] = None,
                    status: Optional[str] = REQUEST_ACTIVE, page: int = 1, limit: int = 20) -> List[RideRequest]:
    if status is not None and status not in REQUEST_STATUSES:
        raise ValidationError(f"unknown status {status!r}")
    if page < 1:
        raise ValidationError("Page must be a positive integer")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
    with get_session() as session:
        return repository.list_requests(
            session, status=status, origin=origin, destination=destination,
            offset=(page - 1) * limit, limit=limit,
        )


def list_all_requests(page: int = 1, limit: int = 20) -> List[RideRequest]:
    """Every request regardless of status, soonest travel first."""
    return search_requests(status=None, page=page, limit=limit)


def list_owner_requests(owner_id: int) -> List[RideRequest]:
    with get_session() as session:
        return repository.list_requests(session, owner_id=owner_id)


def cancel_request(owner_id: int, request_id) -> RideRequest:
    request_id = repository.coerce_uuid(request_id, "request id")
    with get_lock(request_lock_name(request_id)):
        with get_session() as session:
            req = repository.get_request(session, request_id, for_update=True)
            _check_owner(req, owner_id)
            if req.status != REQUEST_ACTIVE:
                raise InvalidStateError(f"request is {req.status} and cannot be cancelled")
            req.status = REQUEST_CANCELLED
            session.add(req)
            session.commit()
    return req


def delete_request(owner_id: int, request_id) -> None:
    request_id = repository.coerce_uuid(request_id, "request id")
    with get_lock(request_lock_name(request_id)):
        with get_session() as session:
            req = repository.get_request(session, request_id, for_update=True)
            _check_owner(req, owner_id)
            repository.delete_request(session, request_id)
            session.commit()
    logger.info("User %s deleted request %s", owner_id, request_id)


def list_request_votes(owner_id: int, request_id) -> List[Vote]:
    with get_session() as session:
        req = repository.get_request(session, request_id)
        _check_owner(req, owner_id)
        return repository.list_votes_for_request(session, req.id)


def list_user_votes(voter_id: int) -> List[Vote]:
    with get_session() as session:
        return repository.list_votes_by_voter(session, voter_id)
