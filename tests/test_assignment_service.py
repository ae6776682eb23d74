"""Driver-to-vehicle assignments: opening, ending and keeping the vehicle in step."""
import pytest

from fleetdesk.core.errors import ErrorKind

pytestmark = pytest.mark.asyncio


@pytest.fixture
def second_vehicle(create_vehicle):
    async def _create(**overrides):
        return await create_vehicle(model="Sprinter", vin="WD3PE8CC5F5987654", license_plate="VAN-202", **overrides)

    return _create


class TestAssign:

    async def test_assign_puts_vehicle_in_use(self, services, admin_ctx, create_driver, create_vehicle):
        driver = await create_driver()
        vehicle = await create_vehicle()

        result = await services.assignments.assign(admin_ctx, driver.id, {"vehicle_id": vehicle.id, "notes": "Day shift"})

        assignment = result.data
        assert assignment.status == "active"
        assert assignment.is_active
        assert assignment.company_id == admin_ctx.tenant_id
        assert assignment.assigned_by == admin_ctx.user_id
        assert assignment.notes == "Day shift"

        vehicle = (await services.vehicles.get_by_id(admin_ctx, vehicle.id)).data
        assert vehicle.assigned_driver_id == driver.id
        assert vehicle.status == "in-use"

        active = await services.assignments.active_for_driver(admin_ctx, driver.id)
        assert active.data.id == assignment.id

    async def test_second_assignment_is_refused(self, services, admin_ctx, create_driver, create_vehicle, second_vehicle):
        driver = await create_driver()
        first = await create_vehicle()
        second = await second_vehicle()
        assert (await services.assignments.assign(admin_ctx, driver.id, {"vehicle_id": first.id})).ok

        result = await services.assignments.assign(admin_ctx, driver.id, {"vehicle_id": second.id})

        assert result.error.kind is ErrorKind.VALIDATION_ERROR
        assert result.error.code == "driver_already_assigned"
        assert (await services.vehicles.get_by_id(admin_ctx, second.id)).data.assigned_driver_id is None

    async def test_driver_holding_a_vehicle_directly_is_refused(
        self, services, admin_ctx, create_driver, create_vehicle, second_vehicle
    ):
        driver = await create_driver()
        await create_vehicle(assigned_driver_id=driver.id)
        other = await second_vehicle()

        result = await services.assignments.assign(admin_ctx, driver.id, {"vehicle_id": other.id})

        assert result.error.code == "driver_already_assigned"

    async def test_vehicle_with_another_driver_is_refused(self, services, admin_ctx, create_driver, create_vehicle):
        holder = await create_driver()
        newcomer = await create_driver(first_name="Ana", license_number="D7654321")
        vehicle = await create_vehicle()
        assert (await services.assignments.assign(admin_ctx, holder.id, {"vehicle_id": vehicle.id})).ok

        result = await services.assignments.assign(admin_ctx, newcomer.id, {"vehicle_id": vehicle.id})

        assert result.error.kind is ErrorKind.VALIDATION_ERROR
        assert result.error.code == "vehicle_already_assigned"

    async def test_inactive_driver_is_refused(self, services, admin_ctx, create_driver, create_vehicle, counting_tables):
        driver = await create_driver(status="suspended")
        vehicle = await create_vehicle()
        counting_tables.reset()

        result = await services.assignments.assign(admin_ctx, driver.id, {"vehicle_id": vehicle.id})

        assert result.error.kind is ErrorKind.VALIDATION_ERROR
        assert counting_tables.count("insert") == 0

    async def test_vehicle_in_maintenance_is_refused(self, services, admin_ctx, create_driver, create_vehicle):
        driver = await create_driver()
        vehicle = await create_vehicle(status="maintenance")

        result = await services.assignments.assign(admin_ctx, driver.id, {"vehicle_id": vehicle.id})

        assert result.error.kind is ErrorKind.VALIDATION_ERROR

    async def test_unknown_vehicle_is_not_found(self, services, admin_ctx, create_driver):
        driver = await create_driver()
        result = await services.assignments.assign(admin_ctx, driver.id, {"vehicle_id": "does-not-exist"})
        assert result.error.kind is ErrorKind.NOT_FOUND

    async def test_missing_vehicle_id_is_rejected_before_any_remote_call(
        self, services, admin_ctx, create_driver, counting_tables
    ):
        driver = await create_driver()
        counting_tables.reset()
        result = await services.assignments.assign(admin_ctx, driver.id, {})
        assert result.error.kind is ErrorKind.VALIDATION_ERROR
        assert counting_tables.calls == []

    async def test_driver_of_other_tenant_is_not_found(self, services, admin_ctx, other_ctx, create_driver, create_vehicle):
        driver = await create_driver(other_ctx)
        vehicle = await create_vehicle()
        result = await services.assignments.assign(admin_ctx, driver.id, {"vehicle_id": vehicle.id})
        assert result.error.kind is ErrorKind.NOT_FOUND

    async def test_rows_are_not_written_through_create(self, services, admin_ctx):
        result = await services.assignments.create(admin_ctx, {"vehicle_id": "v1"})
        assert result.error.kind is ErrorKind.VALIDATION_ERROR


class TestEnd:

    async def test_end_releases_vehicle(self, services, admin_ctx, create_driver, create_vehicle):
        driver = await create_driver()
        vehicle = await create_vehicle()
        opened = await services.assignments.assign(admin_ctx, driver.id, {"vehicle_id": vehicle.id})

        ended = await services.assignments.end(admin_ctx, opened.data.id, {"notes": "Shift over"})

        assert ended.data.status == "ended"
        assert ended.data.end_date is not None
        assert ended.data.ended_by == admin_ctx.user_id
        assert ended.data.end_notes == "Shift over"
        assert not ended.data.is_active

        vehicle = (await services.vehicles.get_by_id(admin_ctx, vehicle.id)).data
        assert vehicle.assigned_driver_id is None
        assert vehicle.status == "available"
        assert (await services.assignments.active_for_driver(admin_ctx, driver.id)).data is None

    async def test_end_twice_is_refused(self, services, admin_ctx, create_driver, create_vehicle):
        driver = await create_driver()
        vehicle = await create_vehicle()
        opened = await services.assignments.assign(admin_ctx, driver.id, {"vehicle_id": vehicle.id})
        assert (await services.assignments.end(admin_ctx, opened.data.id)).ok

        again = await services.assignments.end(admin_ctx, opened.data.id)

        assert again.error.kind is ErrorKind.VALIDATION_ERROR

    async def test_end_before_start_is_refused(self, services, admin_ctx, create_driver, create_vehicle):
        driver = await create_driver()
        vehicle = await create_vehicle()
        opened = await services.assignments.assign(
            admin_ctx, driver.id, {"vehicle_id": vehicle.id, "start_date": "2026-02-01T08:00:00Z"}
        )

        result = await services.assignments.end(admin_ctx, opened.data.id, {"end_date": "2026-01-31T08:00:00Z"})

        assert result.error.kind is ErrorKind.VALIDATION_ERROR

    async def test_unknown_assignment_is_not_found(self, services, admin_ctx):
        result = await services.assignments.end(admin_ctx, "does-not-exist")
        assert result.error.kind is ErrorKind.NOT_FOUND
        assert "does-not-exist" in result.error.message

    async def test_reassigning_vehicle_directly_closes_open_assignment(
        self, services, admin_ctx, create_driver, create_vehicle
    ):
        first = await create_driver()
        second = await create_driver(first_name="Ana", license_number="D7654321")
        vehicle = await create_vehicle()
        await services.assignments.assign(admin_ctx, first.id, {"vehicle_id": vehicle.id})

        assert (await services.vehicles.assign_driver(admin_ctx, vehicle.id, second.id)).ok

        assert (await services.assignments.active_for_driver(admin_ctx, first.id)).data is None


class TestHistory:

    async def test_history_latest_first_and_status_filter(
        self, services, admin_ctx, create_driver, create_vehicle, second_vehicle
    ):
        driver = await create_driver()
        first = await create_vehicle()
        second = await second_vehicle()

        earlier = await services.assignments.assign(
            admin_ctx, driver.id, {"vehicle_id": first.id, "start_date": "2026-01-05T08:00:00Z"}
        )
        await services.assignments.end(admin_ctx, earlier.data.id, {"end_date": "2026-02-01T17:00:00Z"})
        later = await services.assignments.assign(
            admin_ctx, driver.id, {"vehicle_id": second.id, "start_date": "2026-02-02T08:00:00Z"}
        )

        history = await services.assignments.list_for_driver(admin_ctx, driver.id)
        assert [a.id for a in history.data] == [later.data.id, earlier.data.id]

        ended = await services.assignments.list_for_driver(admin_ctx, driver.id, "ended")
        assert [a.vehicle_id for a in ended.data] == [first.id]

        active = await services.assignments.list_for_driver(admin_ctx, driver.id, "active")
        assert [a.vehicle_id for a in active.data] == [second.id]

    async def test_unknown_status_is_rejected(self, services, admin_ctx, create_driver):
        driver = await create_driver()
        result = await services.assignments.list_for_driver(admin_ctx, driver.id, "paused")
        assert result.error.kind is ErrorKind.VALIDATION_ERROR

    async def test_unknown_driver_is_not_found(self, services, admin_ctx):
        result = await services.assignments.list_for_driver(admin_ctx, "does-not-exist")
        assert result.error.kind is ErrorKind.NOT_FOUND
