"""
Locust Load Test Suite

Users, enrollments, tickets and rooms are owned by other services, so the
load test expects them to exist already and mints bearer tokens for a range
of user ids with the shared SECRET_KEY.

Environment:
  LOAD_USER_ID_START / LOAD_USER_ID_END   entitled user ids to impersonate
  LOAD_ROOM_ID                            room every user fights for
  LOAD_ALT_ROOM_IDS                       comma-separated rooms to move into
  SECRET_KEY / ALGORITHM                  must match the API settings

Run scenarios:
  locust -f locust/locustfile.py --tags contention  # Test overbooking
  locust -f locust/locustfile.py --tags reads       # Test GET /booking cache
  locust -f locust/locustfile.py --tags edge        # Test bad input
  locust -f locust/locustfile.py                    # All tests

After a contention run, verify:
  SELECT COUNT(*) FROM bookings WHERE room_id = :LOAD_ROOM_ID;
Should be <= rooms.capacity
"""

import itertools
import os
import random

import jwt
from locust import HttpUser, task, between, tag, events

USER_ID_START = int(os.environ.get("LOAD_USER_ID_START", "1"))
USER_ID_END = int(os.environ.get("LOAD_USER_ID_END", "100"))
ROOM_ID = int(os.environ.get("LOAD_ROOM_ID", "1"))
ALT_ROOM_IDS = [
    int(room_id) for room_id in os.environ.get("LOAD_ALT_ROOM_IDS", "").split(",") if room_id
]
SECRET_KEY = os.environ.get("SECRET_KEY", "super-secret-key-change-in-production")
ALGORITHM = os.environ.get("ALGORITHM", "HS256")

_user_ids = itertools.cycle(range(USER_ID_START, USER_ID_END + 1))


def token_for(user_id: int) -> dict:
    token = jwt.encode({"sub": str(user_id)}, SECRET_KEY, algorithm=ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Users {USER_ID_START}-{USER_ID_END} competing for room {ROOM_ID}")
    print("=" * 60)


class ContentionUser(HttpUser):
    """
    Many entitled users -> one small room.

    Run: locust -f locust/locustfile.py --tags contention -u 100 -r 50 --run-time 30s
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.user_id = next(_user_ids)
        self.headers = token_for(self.user_id)

    @tag("contention")
    @task(3)
    def book_contended_room(self):
        with self.client.post(
            "/booking",
            json={"roomId": ROOM_ID},
            headers=self.headers,
            name="/booking [create]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            elif resp.status_code == 403:
                resp.success()  # Expected: room full or already booked
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("contention")
    @task(1)
    def move_booking(self):
        if not ALT_ROOM_IDS:
            return

        resp = self.client.get("/booking", headers=self.headers, name="/booking [get]")
        if resp.status_code != 200:
            return

        booking_id = resp.json()["id"]
        target = random.choice(ALT_ROOM_IDS + [ROOM_ID])
        with self.client.put(
            f"/booking/{booking_id}",
            json={"roomId": target},
            headers=self.headers,
            name="/booking/[id]",
            catch_response=True,
        ) as put_resp:
            if put_resp.status_code in (200, 403):
                put_resp.success()
            else:
                put_resp.failure(f"Unexpected: {put_resp.status_code}")


class ReadUser(HttpUser):
    """
    Repeated GET /booking, cached in Redis per user.

    Run with and without Redis and compare P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.headers = token_for(next(_user_ids))

    @tag("reads")
    @task
    def read_booking(self):
        with self.client.get("/booking", headers=self.headers, catch_response=True) as resp:
            if resp.status_code in (200, 404):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class EdgeCaseUser(HttpUser):
    """Malformed input must be rejected with 400 or 401, never 500."""
    wait_time = between(0.5, 1)

    def on_start(self):
        self.headers = token_for(next(_user_ids))

    @tag("edge")
    @task
    def invalid_room_id(self):
        with self.client.post(
            "/booking",
            json={"roomId": random.choice([0, -1, "abc", None])},
            headers=self.headers,
            name="/booking [invalid]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 400:
                resp.success()
            else:
                resp.failure(f"Expected 400, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_booking_id(self):
        with self.client.put(
            "/booking/00",
            json={"roomId": ROOM_ID},
            headers=self.headers,
            name="/booking/[invalid]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 400:
                resp.success()
            else:
                resp.failure(f"Expected 400, got {resp.status_code}")

    @tag("edge")
    @task
    def missing_token(self):
        with self.client.get("/booking", name="/booking [no auth]", catch_response=True) as resp:
            if resp.status_code == 401:
                resp.success()
            else:
                resp.failure(f"Expected 401, got {resp.status_code}")
