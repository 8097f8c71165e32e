"""Occupancy and status derivation for a single ride request.

Occupancy is always the number of accepted votes. Status follows it in
both directions between ``active`` and ``completed``; ``cancelled`` and
``expired`` are frozen here, only their counter is kept current.
"""
import logging

import repository
from models import RideRequest, REQUEST_ACTIVE, REQUEST_COMPLETED, VOTE_ACCEPTED

logger = logging.getLogger(__name__)


def next_status(status: str, occupancy: int, max_persons: int) -> str:
    if status == REQUEST_ACTIVE and occupancy >= max_persons:
        return REQUEST_COMPLETED
    if status == REQUEST_COMPLETED and occupancy < max_persons:
        # a withdrawal freed a seat
        return REQUEST_ACTIVE
    return status


def recompute(session, request_id) -> RideRequest:
    """Recount accepted votes and write occupancy/status inside the caller's transaction."""
    req = repository.get_request(session, request_id, for_update=True)
    accepted = repository.count_votes_for_request(session, req.id, VOTE_ACCEPTED)
    status = next_status(req.status, accepted, req.max_persons)
    if accepted == req.current_occupancy and status == req.status:
        return req
    previous = req.status
    repository.update_request_status_and_occupancy(
        session, req.id, accepted, status, expected_status=previous
    )
    session.refresh(req)
    if status != previous:
        logger.info("Request %s moved %s -> %s (occupancy %s/%s)",
                    req.id, previous, status, accepted, req.max_persons)
    return req
