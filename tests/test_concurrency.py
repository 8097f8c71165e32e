import asyncio
from concurrent.futures import ThreadPoolExecutor
import gc
import threading

import httpx
import pytest

import db
from errors import InvalidStateError
from main import app
from models import REQUEST_COMPLETED
from sample_data import seed
from votes import cast_vote

from helpers import accepted_votes, make_request, reload_request


def test_parallel_accepts_never_overshoot_capacity():
    users, _ = seed(n_users=7, n_requests=0)
    owner, voters = users[0], users[1:]
    r = make_request(owner.id, max_persons=3)
    barrier = threading.Barrier(len(voters))

    def vote(voter_id):
        barrier.wait()
        try:
            cast_vote(voter_id, r.id, "accepted")
            return "ok"
        except InvalidStateError:
            return "rejected"

    with ThreadPoolExecutor(max_workers=len(voters)) as pool:
        outcomes = list(pool.map(vote, [v.id for v in voters]))

    assert outcomes.count("ok") == 3
    assert outcomes.count("rejected") == 3
    stored = reload_request(r.id)
    assert stored.current_occupancy == 3 == accepted_votes(r.id)
    assert stored.status == REQUEST_COMPLETED


@pytest.mark.asyncio
async def test_concurrent_vote_submissions_over_http():
    users, _ = seed(n_users=6, n_requests=0)
    owner, voters = users[0], users[1:]
    r = make_request(owner.id, max_persons=2)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        tasks = [
            client.post(f"/votes/{r.id}", json={"status": "accepted"}, headers={"X-User-Id": str(v.id)})
            for v in voters
        ]
        res = await asyncio.gather(*tasks)
    codes = sorted(resp.status_code for resp in res)
    assert codes == [200, 200, 409, 409, 409]
    assert reload_request(r.id).current_occupancy == 2


def test_request_locks_released_after_use():
    users, _ = seed(n_users=2, n_requests=0)
    owner, voter = users
    for _ in range(50):
        r = make_request(owner.id, max_persons=2)
        cast_vote(voter.id, r.id, "accepted")
    gc.collect()
    assert len(db.locks) == 0


def test_request_lock_shared_while_held():
    name = db.request_lock_name("abc")
    with db.get_lock(name) as held:
        assert db.get_lock(name) is held
        assert held.locked()
        assert len(db.locks) == 1
    del held
    gc.collect()
    assert name not in db.locks
