"""Data access for ride requests and votes.

Every function takes an open session and leaves commit/rollback to the
caller, so several calls can share one transaction.
"""
from typing import Dict, List, Optional
from datetime import datetime
import uuid

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from errors import ConstraintViolation, InvalidStateError, NotFoundError, ValidationError
from models import RideRequest, Vote, REQUEST_ACTIVE, REQUEST_CANCELLED, REQUEST_STATUSES


def coerce_uuid(value, label: str = "id") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a valid UUID")


# ────────────────────────── requests ────────────────────────────────────────

def get_request(session, request_id, for_update: bool = False) -> RideRequest:
    request_id = coerce_uuid(request_id, "request id")
    query = session.query(RideRequest).filter(RideRequest.id == request_id)
    if for_update:
        # row lock on backends that support it; SQLite renders no clause
        query = query.with_for_update()
    req = query.one_or_none()
    if req is None:
        raise NotFoundError("request not found")
    return req


def create_request(session, **fields) -> RideRequest:
    req = RideRequest(**fields)
    session.add(req)
    session.flush()
    return req


def list_requests(session, status: Optional[str] = None, owner_id: Optional[int] = None,
                  origin: Optional[str] = None, destination: Optional[str] = None,
                  offset: int = 0, limit: Optional[int] = None) -> List[RideRequest]:
    query = session.query(RideRequest)
    if status is not None:
        query = query.filter(RideRequest.status == status)
    if owner_id is not None:
        query = query.filter(RideRequest.owner_id == owner_id)
    if origin:
        query = query.filter(func.lower(RideRequest.origin).contains(origin.lower()))
    if destination:
        query = query.filter(func.lower(RideRequest.destination).contains(destination.lower()))
    query = query.order_by(RideRequest.travel_date, RideRequest.created_at).offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def update_request_status_and_occupancy(session, request_id, occupancy: int, status: str,
                                        expected_status: Optional[str] = None) -> int:
    """Write occupancy and status for one request.

    With ``expected_status`` the write only lands if the persisted status
    still equals it (compare-and-swap); a concurrent sweep that moved the
    row away raises ``InvalidStateError``.
    """
    request_id = coerce_uuid(request_id, "request id")
    query = session.query(RideRequest).filter(RideRequest.id == request_id)
    if expected_status is not None:
        query = query.filter(RideRequest.status == expected_status)
    count = query.update(
        {RideRequest.current_occupancy: occupancy, RideRequest.status: status},
        synchronize_session=False,
    )
    if count == 0:
        exists = session.query(RideRequest.id).filter(RideRequest.id == request_id).first()
        if exists is None:
            raise NotFoundError("request not found")
        raise InvalidStateError("request status changed concurrently")
    return count


def batch_update_requests(session, predicate, new_status: str) -> int:
    """Set ``status = new_status`` on every request matching ``predicate``; return the count."""
    return session.query(RideRequest).filter(predicate).update(
        {RideRequest.status: new_status}, synchronize_session=False
    )


def group_count_requests_by_status(session) -> Dict[str, int]:
    rows = (
        session.query(RideRequest.status, func.count(RideRequest.id))
        .group_by(RideRequest.status)
        .all()
    )
    return {status: count for status, count in rows}


def count_requests_for_owner(session, owner_id: int, status: Optional[str] = None) -> int:
    query = session.query(RideRequest).filter(RideRequest.owner_id == owner_id)
    if status is not None:
        query = query.filter(RideRequest.status == status)
    return query.count()


def cancel_active_requests_for_owner(session, owner_id: int) -> int:
    return batch_update_requests(
        session,
        (RideRequest.owner_id == owner_id) & (RideRequest.status == REQUEST_ACTIVE),
        REQUEST_CANCELLED,
    )


def delete_request(session, request_id) -> None:
    """Remove a request together with its votes (votes go first)."""
    req = get_request(session, request_id)
    session.query(Vote).filter(Vote.request_id == req.id).delete(synchronize_session=False)
    session.delete(req)
    session.flush()


# ────────────────────────── votes ───────────────────────────────────────────

def get_vote(session, voter_id: int, request_id) -> Optional[Vote]:
    request_id = coerce_uuid(request_id, "request id")
    return (
        session.query(Vote)
        .filter(Vote.voter_id == voter_id, Vote.request_id == request_id)
        .one_or_none()
    )


def create_vote(session, voter_id: int, request_id, decision: str, note: Optional[str] = None) -> Vote:
    vote = Vote(voter_id=voter_id, request_id=coerce_uuid(request_id, "request id"),
                decision=decision, note=note)
    session.add(vote)
    try:
        session.flush()
    except IntegrityError as exc:
        raise ConstraintViolation("vote already exists for this voter and request") from exc
    return vote


def upsert_vote_decision(session, voter_id: int, request_id, decision: str, note: Optional[str] = None) -> Vote:
    vote = get_vote(session, voter_id, request_id)
    if vote is None:
        return create_vote(session, voter_id, request_id, decision, note)
    vote.decision = decision
    vote.note = note
    vote.updated_at = datetime.utcnow()
    session.add(vote)
    session.flush()
    return vote


def delete_vote(session, voter_id: int, request_id) -> bool:
    vote = get_vote(session, voter_id, request_id)
    if vote is None:
        return False
    session.delete(vote)
    session.flush()
    return True


def count_votes_for_request(session, request_id, decision: Optional[str] = None) -> int:
    request_id = coerce_uuid(request_id, "request id")
    query = session.query(Vote).filter(Vote.request_id == request_id)
    if decision is not None:
        query = query.filter(Vote.decision == decision)
    return query.count()


def count_votes_by_voter(session, voter_id: int, decision: Optional[str] = None) -> int:
    query = session.query(Vote).filter(Vote.voter_id == voter_id)
    if decision is not None:
        query = query.filter(Vote.decision == decision)
    return query.count()


def list_votes_for_request(session, request_id) -> List[Vote]:
    request_id = coerce_uuid(request_id, "request id")
    return (
        session.query(Vote)
        .filter(Vote.request_id == request_id)
        .order_by(Vote.created_at)
        .all()
    )


def list_votes_by_voter(session, voter_id: int) -> List[Vote]:
    return (
        session.query(Vote)
        .filter(Vote.voter_id == voter_id)
        .order_by(Vote.created_at.desc())
        .all()
    )


def request_ids_voted_by(session, voter_id: int) -> List[uuid.UUID]:
    return [
        row[0] for row in session.query(Vote.request_id).filter(Vote.voter_id == voter_id).distinct().all()
    ]


def empty_status_counts() -> Dict[str, int]:
    return {status: 0 for status in REQUEST_STATUSES}
