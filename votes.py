"""Recording and withdrawing votes on ride requests.

A vote write and the occupancy recompute it causes are one transaction,
serialised per request id, so concurrent accept votes can never push a
request past its capacity.
"""
from dataclasses import dataclass
from typing import Optional
import logging

import repository
from config import MAX_NOTE_LENGTH
from db import get_session, get_lock, request_lock_name
from errors import ConstraintViolation, InvalidStateError, NotFoundError, ValidationError
from models import RideRequest, User, Vote, REQUEST_ACTIVE, VOTE_ACCEPTED, VOTE_DECISIONS
from occupancy import recompute

logger = logging.getLogger(__name__)


@dataclass
class VoteResult:
    vote: Vote
    request: RideRequest


@dataclass
class WithdrawResult:
    removed: bool
    request: RideRequest


def validate_vote(decision, note) -> Optional[str]:
    if decision not in VOTE_DECISIONS:
        raise ValidationError("Vote status must be either accepted or rejected")
    if note is None:
        return None
    if not isinstance(note, str):
        raise ValidationError("note must be a string")
    note = note.strip()
    if len(note) > MAX_NOTE_LENGTH:
        raise ValidationError(f"note must be at most {MAX_NOTE_LENGTH} characters")
    return note or None


def cast_vote(voter_id: int, request_id, decision: str, note: Optional[str] = None) -> VoteResult:
    """Create or replace ``voter_id``'s vote on a request and recompute its occupancy.

    Raises ValidationError, NotFoundError or InvalidStateError; a duplicate-key
    race is retried once as an update before ConstraintViolation propagates.
    """
    note = validate_vote(decision, note)
    request_id = repository.coerce_uuid(request_id, "request id")
    try:
        return _cast_vote_once(voter_id, request_id, decision, note)
    except ConstraintViolation:
        logger.warning("Duplicate vote key for voter %s on request %s, retrying as update",
                       voter_id, request_id)
    return _cast_vote_once(voter_id, request_id, decision, note)


def _cast_vote_once(voter_id, request_id, decision, note) -> VoteResult:
    with get_lock(request_lock_name(request_id)):
        with get_session() as session:
            if session.get(User, voter_id) is None:
                raise NotFoundError("user not found")
            req = repository.get_request(session, request_id, for_update=True)
            if req.owner_id == voter_id:
                raise ValidationError("cannot vote on your own request")
            if req.status != REQUEST_ACTIVE:
                raise InvalidStateError(f"request is {req.status}, voting is closed")
            existing = repository.get_vote(session, voter_id, request_id)
            takes_seat = decision == VOTE_ACCEPTED and (existing is None or existing.decision != VOTE_ACCEPTED)
            if takes_seat and req.current_occupancy >= req.max_persons:
                raise InvalidStateError("request has no free seats")
            vote = repository.upsert_vote_decision(session, voter_id, request_id, decision, note)
            req = recompute(session, request_id)
            session.commit()
            return VoteResult(vote=vote, request=req)


def withdraw_vote(voter_id: int, request_id) -> WithdrawResult:
    """Delete ``voter_id``'s vote if there is one; a missing vote is not an error."""
    request_id = repository.coerce_uuid(request_id, "request id")
    with get_lock(request_lock_name(request_id)):
        with get_session() as session:
            repository.get_request(session, request_id, for_update=True)
            removed = repository.delete_vote(session, voter_id, request_id)
            req = recompute(session, request_id)
            session.commit()
    if removed:
        logger.info("Voter %s withdrew from request %s (occupancy %s/%s)",
                    voter_id, request_id, req.current_occupancy, req.max_persons)
    return WithdrawResult(removed=removed, request=req)
