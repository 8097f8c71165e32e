from datetime import datetime, timedelta

from db import get_session
from models import RideRequest, User, Vote, REQUEST_ACTIVE, VOTE_ACCEPTED


def today():
    return datetime.combine(datetime.utcnow().date(), datetime.min.time())


def make_user(name="Alice"):
    session = get_session()
    u = User(name=name)
    session.add(u)
    session.commit()
    session.refresh(u)
    session.close()
    return u


def make_request(owner_id, max_persons=3, status=REQUEST_ACTIVE, occupancy=0,
                 travel_date=None, created_at=None, origin="Main Campus", destination="Airport"):
    """Insert a request directly, bypassing create-time validation."""
    session = get_session()
    r = RideRequest(
        owner_id=owner_id,
        origin=origin,
        destination=destination,
        travel_date=travel_date or today() + timedelta(days=1),
        travel_time="09:30",
        max_persons=max_persons,
        current_occupancy=occupancy,
        status=status,
    )
    if created_at is not None:
        r.created_at = created_at
    session.add(r)
    session.commit()
    session.refresh(r)
    session.close()
    return r


def reload_request(request_id):
    with get_session() as session:
        return session.get(RideRequest, request_id)


def accepted_votes(request_id):
    with get_session() as session:
        return (
            session.query(Vote)
            .filter(Vote.request_id == request_id, Vote.decision == VOTE_ACCEPTED)
            .count()
        )


def all_votes(request_id=None):
    with get_session() as session:
        query = session.query(Vote)
        if request_id is not None:
            query = query.filter(Vote.request_id == request_id)
        return query.all()
