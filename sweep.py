"""Expiry sweep: reconcile request status against time and occupancy.

Two set-based updates, each committed on its own. Expiry runs first, so a
request that is both full and past its date ends up ``expired``.
"""
from dataclasses import dataclass, asdict
from datetime import datetime, time, timedelta
from typing import Optional
import logging

from sqlalchemy import and_, or_

import repository
from config import request_expiry_hours
from db import get_session
from models import RideRequest, REQUEST_ACTIVE, REQUEST_COMPLETED, REQUEST_EXPIRED

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    expired: int
    completed: int

    def as_dict(self):
        return asdict(self)


def expiry_predicate(now: datetime, expiry_hours: float):
    cutoff = now - timedelta(hours=expiry_hours)
    day_boundary = datetime.combine(now.date(), time.min)
    return and_(
        RideRequest.status == REQUEST_ACTIVE,
        or_(RideRequest.travel_date < day_boundary, RideRequest.created_at < cutoff),
    )


def full_predicate():
    return and_(
        RideRequest.status == REQUEST_ACTIVE,
        RideRequest.current_occupancy >= RideRequest.max_persons,
    )


def sweep(now: Optional[datetime] = None, expiry_hours: Optional[float] = None) -> SweepResult:
    if now is None:
        now = datetime.utcnow()
    if expiry_hours is None:
        expiry_hours = request_expiry_hours()
    with get_session() as session:
        expired = repository.batch_update_requests(session, expiry_predicate(now, expiry_hours), REQUEST_EXPIRED)
        session.commit()
        completed = repository.batch_update_requests(session, full_predicate(), REQUEST_COMPLETED)
        session.commit()
    logger.info("Cleanup completed: %s expired, %s completed", expired, completed)
    return SweepResult(expired=expired, completed=completed)
