"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overselling
  locust -f locustfile.py --tags checkin      # Test double check-in at the door
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import threading
from locust import HttpUser, task, between, tag, events

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None
CONCURRENCY_CAPACITY = 10
TICKET_UUIDS = []
_setup_lock = threading.Lock()


def random_user_id():
    return random.randint(100000, 999999)


def registration_body(user_id):
    return {
        "user_id": user_id,
        "user_email": f"load_{user_id}@test.com",
        "user_name": f"Load User {user_id}",
    }


def event_body(title, capacity):
    return {
        "title": title,
        "description": "Load test event",
        "date": "2030-01-01",
        "time": "19:00:00",
        "location": "Test",
        "capacity": capacity,
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: events and tickets are created by the first users to start")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users -> 10 places

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      GET /api/v1/events/{id}/capacity  -> registration_count == 10
      SELECT COUNT(*) FROM registrations WHERE event_id = X;  -> 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.user_id = random_user_id()
        with _setup_lock:
            if not CONCURRENCY_EVENT_ID:
                resp = self.client.post(
                    "/api/v1/events/",
                    json=event_body("Concurrency Test Event", CONCURRENCY_CAPACITY),
                )
                if resp.status_code == 201:
                    globals()["CONCURRENCY_EVENT_ID"] = resp.json()["id"]
                    print(f"\nCreated event {CONCURRENCY_EVENT_ID} with {CONCURRENCY_CAPACITY} places\n")

    @tag("concurrency")
    @task
    def register_limited_places(self):
        """All users fight for the same 10 places."""
        if not CONCURRENCY_EVENT_ID:
            return

        with self.client.post(
            f"/api/v1/registrations/events/{CONCURRENCY_EVENT_ID}/register",
            json=registration_body(self.user_id),
            name="/api/v1/registrations/events/{id}/register",
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 400):
                resp.success()  # 400: full or already registered
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ScannerUser(HttpUser):
    """
    TEST 2: Door scanners - several devices scanning the same small set of tickets

    Run: locust -f locustfile.py --tags checkin -u 50 -r 25 --run-time 30s

    Every ticket must be checked in exactly once: one 200 per uuid, every
    other scan of it 400. Compare the 200 count with len(TICKET_UUIDS).
    """
    wait_time = between(0, 0.2)

    def on_start(self):
        with _setup_lock:
            if TICKET_UUIDS:
                return
            resp = self.client.post("/api/v1/events/", json=event_body("Check-in Test Event", 20))
            if resp.status_code != 201:
                return
            event_id = resp.json()["id"]
            for _ in range(20):
                reg = self.client.post(
                    f"/api/v1/registrations/events/{event_id}/register",
                    json=registration_body(random_user_id()),
                    name="/api/v1/registrations/events/{id}/register",
                )
                if reg.status_code != 201:
                    continue
                ticket = self.client.post(
                    "/api/v1/tickets/generate",
                    json={"event_id": event_id, "registration_id": reg.json()["id"]},
                )
                if ticket.status_code == 201:
                    TICKET_UUIDS.append(ticket.json()["uuid"])
            print(f"\nIssued {len(TICKET_UUIDS)} tickets for event {event_id}\n")

    @tag("checkin")
    @task
    def scan_ticket(self):
        if not TICKET_UUIDS:
            return

        with self.client.post(
            "/api/v1/tickets/verify",
            json={"uuid": random.choice(TICKET_UUIDS)},
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 400):
                resp.success()  # 400: already verified
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, allowed):
        if resp.status_code in allowed:
            resp.success()
        else:
            resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_event_id(self):
        """Register for a non-existent event."""
        with self.client.post(
            "/api/v1/registrations/events/999999/register",
            json=registration_body(random_user_id()),
            name="/api/v1/registrations/events/{id}/register [missing]",
            catch_response=True,
        ) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def zero_capacity(self):
        with self.client.post(
            "/api/v1/events/",
            json=event_body("No Places", 0),
            catch_response=True,
        ) as resp:
            self._expect(resp, (400, 422))

    @tag("edge")
    @task
    def bad_email(self):
        with self.client.post(
            "/api/v1/registrations/events/1/register",
            json={"user_id": 1, "user_email": "not-an-email", "user_name": "X"},
            name="/api/v1/registrations/events/{id}/register [bad email]",
            catch_response=True,
        ) as resp:
            self._expect(resp, (422,))

    @tag("edge")
    @task
    def unknown_ticket(self):
        with self.client.post(
            "/api/v1/tickets/verify",
            json={"uuid": "00000000-0000-0000-0000-000000000000"},
            name="/api/v1/tickets/verify [unknown]",
            catch_response=True,
        ) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def malformed_json(self):
        """Send garbage data."""
        with self.client.post(
            "/api/v1/tickets/verify",
            data="not json at all",
            name="/api/v1/tickets/verify [garbage]",
            catch_response=True,
        ) as resp:
            self._expect(resp, (400, 422))

    @tag("edge")
    @task
    def missing_auth(self):
        """Announce without a token."""
        with self.client.post(
            "/api/v1/announcements/",
            json={"event_id": 1, "subject": "Hi", "message": "Hello"},
            catch_response=True,
        ) as resp:
            self._expect(resp, (401,))


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing
      - Some registrations and capacity checks
      - Rare event creation
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.user_id = random_user_id()

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/v1/events/")
        if resp.status_code == 200:
            for event in resp.json():
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @task(10)
    def check_capacity(self):
        if EVENT_IDS:
            self.client.get(
                f"/api/v1/events/{random.choice(EVENT_IDS)}/capacity",
                name="/api/v1/events/{id}/capacity",
            )

    @task(10)
    def register(self):
        if EVENT_IDS:
            self.client.post(
                f"/api/v1/registrations/events/{random.choice(EVENT_IDS)}/register",
                json=registration_body(self.user_id),
                name="/api/v1/registrations/events/{id}/register",
            )

    @task(3)
    def create_event(self):
        resp = self.client.post(
            "/api/v1/events/",
            json=event_body(f"Event {random.randint(1, 10000)}", random.randint(10, 500)),
        )
        if resp.status_code == 201:
            EVENT_IDS.append(resp.json()["id"])
