import repository
from db import get_session
from models import REQUEST_ACTIVE, REQUEST_COMPLETED, VOTE_ACCEPTED, VOTE_REJECTED


def get_cleanup_stats():
    """Request counts per status; every status is present, zero if unused."""
    result = repository.empty_status_counts()
    with get_session() as session:
        result.update(repository.group_count_requests_by_status(session))
    return result


def get_user_stats(user_id: int):
    with get_session() as session:
        return {
            "requests": {
                "total": repository.count_requests_for_owner(session, user_id),
                "active": repository.count_requests_for_owner(session, user_id, REQUEST_ACTIVE),
                "completed": repository.count_requests_for_owner(session, user_id, REQUEST_COMPLETED),
            },
            "votes": {
                "total": repository.count_votes_by_voter(session, user_id),
                "accepted": repository.count_votes_by_voter(session, user_id, VOTE_ACCEPTED),
                "rejected": repository.count_votes_by_voter(session, user_id, VOTE_REJECTED),
            },
        }
