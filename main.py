from contextlib import asynccontextmanager
import functools
import logging

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

import ride_requests
import stats
import users
import votes
from config import auto_cleanup_enabled, log_level
from db import init_db
from errors import RideshareError, ValidationError
from scheduler import CleanupScheduler

logger = logging.getLogger(__name__)

# JSON body keys -> update_request keyword arguments
REQUEST_FIELDS = {
    "from": "origin",
    "to": "destination",
    "date": "travel_date",
    "time": "travel_time",
    "maxPersons": "max_persons",
    "carType": "car_type",
}


def serialize_user(u):
    return {
        "id": u.id,
        "name": u.name,
        "phone": u.phone,
        "created_at": u.created_at.isoformat(),
    }



def serialize_request(r):
    return {
        "id": str(r.id),
        "owner_id": r.owner_id,
        "origin": r.origin,
        "destination": r.destination,
        "travel_date": r.travel_date.date().isoformat(),
        "travel_time": r.travel_time,
        "car_type": r.car_type,
        "max_persons": r.max_persons,
        "current_occupancy": r.current_occupancy,
        "status": r.status,
        "created_at": r.created_at.isoformat(),
    }


def serialize_vote(v):
    return {
        "id": str(v.id),
        "voter_id": v.voter_id,
        "request_id": str(v.request_id),
        "status": v.decision,
        "note": v.note,
        "created_at": v.created_at.isoformat(),
        "updated_at": v.updated_at.isoformat(),
    }


def current_user(request: Request) -> int:
    # set by the upstream identity provider once the token is verified
    raw = request.headers.get("x-user-id")
    if raw is None:
        raise ValidationError("missing X-User-Id header")
    try:
        return int(raw)
    except ValueError:
        raise ValidationError("X-User-Id must be an integer")


async def read_json(request: Request) -> dict:
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError("body must be valid JSON")
    if not isinstance(payload, dict):
        raise ValidationError("body must be a JSON object")
    return payload


def _int_param(request: Request, name: str, default: int) -> int:
    raw = request.query_params.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


async def health(request: Request):
    return JSONResponse({"status": "ok"})


async def create_user(request: Request):
    payload = await read_json(request)
    user = await run_in_threadpool(users.create_user, payload.get("name"), payload.get("phone"))
    return JSONResponse(serialize_user(user), status_code=201)


async def get_profile(request: Request):
    user_id = current_user(request)
    user = await run_in_threadpool(users.get_profile, user_id)
    return JSONResponse(serialize_user(user))


async def update_profile(request: Request):
    user_id = current_user(request)
    payload = await read_json(request)
    user = await run_in_threadpool(users.update_profile, user_id, payload.get("name"), payload.get("phone"))
    return JSONResponse(serialize_user(user))


async def delete_account(request: Request):
    user_id = current_user(request)
    await run_in_threadpool(users.delete_user_account, user_id)
    return JSONResponse({"deleted": user_id})


async def user_stats(request: Request):
    user_id = current_user(request)
    return JSONResponse(await run_in_threadpool(stats.get_user_stats, user_id))


async def create_request(request: Request):
    user_id = current_user(request)
    payload = await read_json(request)
    required = ["from", "to", "date", "time", "maxPersons"]
    for k in required:
        if k not in payload:
            return JSONResponse({"error": f"missing {k}"}, status_code=400)
    rr = await run_in_threadpool(
        ride_requests.create_request,
        user_id,
        payload["from"],
        payload["to"],
        payload["date"],
        payload["time"],
        payload["maxPersons"],
        payload.get("carType", "any"),
    )
    return JSONResponse(serialize_request(rr), status_code=201)


async def all_requests(request: Request):
    rows = await run_in_threadpool(
        ride_requests.list_all_requests,
        _int_param(request, "page", 1),
        _int_param(request, "limit", 20),
    )
    return JSONResponse([serialize_request(r) for r in rows])


async def update_request(request: Request):
    user_id = current_user(request)
    payload = await read_json(request)
    changes = {REQUEST_FIELDS[k]: v for k, v in payload.items() if k in REQUEST_FIELDS}
    if not changes:
        return JSONResponse({"error": "nothing to update"}, status_code=400)
    rr = await run_in_threadpool(
        functools.partial(ride_requests.update_request, user_id, request.path_params["request_id"], **changes)
    )
    return JSONResponse(serialize_request(rr))


async def search_requests(request: Request):
    q = request.query_params
    rows = await run_in_threadpool(
        ride_requests.search_requests,
        q.get("from"),
        q.get("to"),
        q.get("status", "active"),
        _int_param(request, "page", 1),
        _int_param(request, "limit", 20),
    )
    return JSONResponse([serialize_request(r) for r in rows])


async def my_requests(request: Request):
    user_id = current_user(request)
    rows = await run_in_threadpool(ride_requests.list_owner_requests, user_id)
    return JSONResponse([serialize_request(r) for r in rows])


async def get_request(request: Request):
    rr = await run_in_threadpool(ride_requests.get_request, request.path_params["request_id"])
    return JSONResponse(serialize_request(rr))


async def cancel_request(request: Request):
    user_id = current_user(request)
    rr = await run_in_threadpool(ride_requests.cancel_request, user_id, request.path_params["request_id"])
    return JSONResponse(serialize_request(rr))


async def delete_request(request: Request):
    user_id = current_user(request)
    rid = request.path_params["request_id"]
    await run_in_threadpool(ride_requests.delete_request, user_id, rid)
    return JSONResponse({"deleted": rid})


async def cast_vote(request: Request):
    user_id = current_user(request)
    payload = await read_json(request)
    result = await run_in_threadpool(
        votes.cast_vote,
        user_id,
        request.path_params["request_id"],
        payload.get("status"),
        payload.get("note"),
    )
    return JSONResponse({"vote": serialize_vote(result.vote), "request": serialize_request(result.request)})


async def withdraw_vote(request: Request):
    user_id = current_user(request)
    result = await run_in_threadpool(votes.withdraw_vote, user_id, request.path_params["request_id"])
    return JSONResponse({"removed": result.removed, "request": serialize_request(result.request)})


async def request_votes(request: Request):
    user_id = current_user(request)
    rows = await run_in_threadpool(ride_requests.list_request_votes, user_id, request.path_params["request_id"])
    return JSONResponse([serialize_vote(v) for v in rows])


async def my_votes(request: Request):
    user_id = current_user(request)
    rows = await run_in_threadpool(ride_requests.list_user_votes, user_id)
    return JSONResponse([serialize_vote(v) for v in rows])


async def admin_cleanup(request: Request):
    scheduler = request.app.state.scheduler
    result = await run_in_threadpool(scheduler.manual_sweep)
    if result is None:
        return JSONResponse({"error": "cleanup already in progress"}, status_code=409)
    return JSONResponse(result.as_dict())


async def admin_stats(request: Request):
    return JSONResponse(await run_in_threadpool(stats.get_cleanup_stats))


async def rideshare_error(request: Request, exc: RideshareError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": str(exc)}, status_code=exc.status_code)


@asynccontextmanager
async def lifespan(app: Starlette):
    logging.basicConfig(level=log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    init_db()
    scheduler = CleanupScheduler()
    app.state.scheduler = scheduler
    if auto_cleanup_enabled():
        scheduler.start()
    try:
        yield
    finally:
        scheduler.stop()


routes = [
    Route("/health", health, methods=["GET"]),
    Route("/users", create_user, methods=["POST"]),
    Route("/users/me", delete_account, methods=["DELETE"]),
    Route("/users/me/stats", user_stats, methods=["GET"]),
    Route("/users/profile", get_profile, methods=["GET"]),
    Route("/users/profile", update_profile, methods=["PUT"]),
    Route("/requests", create_request, methods=["POST"]),
    Route("/requests/search", search_requests, methods=["GET"]),
    Route("/requests/all", all_requests, methods=["GET"]),
    Route("/requests/mine", my_requests, methods=["GET"]),
    Route("/requests/{request_id}", get_request, methods=["GET"]),
    Route("/requests/{request_id}", delete_request, methods=["DELETE"]),
    Route("/requests/{request_id}", update_request, methods=["PUT"]),
    Route("/requests/{request_id}/cancel", cancel_request, methods=["POST"]),
    Route("/votes/mine", my_votes, methods=["GET"]),
    Route("/votes/request/{request_id}", request_votes, methods=["GET"]),
    Route("/votes/{request_id}", cast_vote, methods=["POST"]),
    Route("/votes/{request_id}", withdraw_vote, methods=["DELETE"]),
    Route("/admin/cleanup", admin_cleanup, methods=["POST"]),
    Route("/admin/stats", admin_stats, methods=["GET"]),
]

app = Starlette(
    debug=False,
    routes=routes,
    lifespan=lifespan,
    exception_handlers={RideshareError: rideshare_error},
)
