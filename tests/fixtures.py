"""Payload builders and test doubles shared by the test modules."""
from datetime import date, timedelta

from fleetdesk.schemas.auth import SignUpRequest

TEST_SECRET_KEY = "fleetdesk-test-secret"
PUBLIC_URL = "http://testserver/api/v1"
PASSWORD = "s3cret-pass"


class CountingTables:
    """Table gateway wrapper recording every call that reaches the platform."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []

    def count(self, method: str, table: str = None) -> int:
        return sum(1 for m, t in self.calls if m == method and (table is None or t == table))

    def reset(self) -> None:
        self.calls.clear()

    async def select(self, access_token, query):
        self.calls.append(("select", query.table))
        return await self.inner.select(access_token, query)

    async def insert(self, access_token, table, rows, *, single=False):
        self.calls.append(("insert", table))
        return await self.inner.insert(access_token, table, rows, single=single)

    async def upsert(self, access_token, table, rows, *, on_conflict, single=False):
        self.calls.append(("upsert", table))
        return await self.inner.upsert(access_token, table, rows, on_conflict=on_conflict, single=single)

    async def update(self, access_token, query, values):
        self.calls.append(("update", query.table))
        return await self.inner.update(access_token, query, values)

    async def delete(self, access_token, query):
        self.calls.append(("delete", query.table))
        return await self.inner.delete(access_token, query)


def signup_request(email: str, company_name: str, **overrides) -> SignUpRequest:
    data = {
        "email": email,
        "password": PASSWORD,
        "first_name": "Dana",
        "last_name": "Whitfield",
        "company_name": company_name,
    }
    data.update(overrides)
    return SignUpRequest(**data)


def driver_payload(**overrides):
    data = {
        "first_name": "Marcus",
        "last_name": "Reyes",
        "email": "marcus.reyes@acmefleet.com",
        "phone": "555-0101",
        "license_number": "D1234567",
        "license_class": "CDL-A",
        "license_expiry": (date.today() + timedelta(days=400)).isoformat(),
        "hire_date": "2021-03-15",
        "status": "active",
    }
    data.update(overrides)
    return data


def vehicle_payload(**overrides):
    data = {
        "make": "Freightliner",
        "model": "Cascadia",
        "year": 2021,
        "vin": "1FUJGLDR5CSBM1234",
        "license_plate": "TRK-101",
        "vehicle_type": "truck",
        "status": "available",
        "mileage": 42000,
    }
    data.update(overrides)
    return data


def signup_headers(client, email: str, company_name: str) -> dict:
    """Sign an admin up through the API and return their bearer header."""
    response = client.post(
        "/api/v1/auth/signup",
        json={
            "email": email,
            "password": PASSWORD,
            "first_name": "Dana",
            "last_name": "Whitfield",
            "company_name": company_name,
        },
    )
    assert response.status_code == 201, response.text
    token = response.json()["data"]["session"]["access_token"]
    return {"Authorization": f"Bearer {token}"}
