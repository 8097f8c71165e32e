from datetime import datetime, timedelta
from db import init_db, get_session
from models import User, RideRequest, CAR_TYPES
import random

PLACES = ["Main Campus", "North Dorms", "Central Station", "Airport", "City Mall", "Medical School"]


def seed(n_users=20, n_requests=50):
    init_db()
    session = get_session()
    users = [User(name=f"student{i}") for i in range(1, n_users + 1)]
    session.add_all(users)
    session.commit()
    today = datetime.combine(datetime.utcnow().date(), datetime.min.time())
    requests = []
    for i in range(1, n_requests + 1):
        u = users[(i - 1) % len(users)]
        origin, destination = random.sample(PLACES, 2)
        rr = RideRequest(
            owner_id=u.id,
            origin=origin,
            destination=destination,
            travel_date=today + timedelta(days=random.randint(0, 7)),
            travel_time=f"{random.randint(6, 22):02d}:{random.choice([0, 15, 30, 45]):02d}",
            car_type=random.choice(CAR_TYPES),
            max_persons=random.randint(1, 4),
        )
        session.add(rr)
        requests.append(rr)
    session.commit()
    session.close()
    print("Seeded sample data")
    return users, requests


if __name__ == "__main__":
    seed()
