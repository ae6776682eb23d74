"""Vehicle access-layer operations: paging, status counts, maintenance and assignments."""
from datetime import date, timedelta

import pytest

from fleetdesk.core.errors import ErrorKind
from fleetdesk.schemas.vehicle import VehicleResponse
from fleetdesk.services.vehicle_service import count_by_status, is_due_for_maintenance

pytestmark = pytest.mark.asyncio

TODAY = date(2026, 3, 1)


def make_vehicle(**overrides) -> VehicleResponse:
    data = {"id": "v1", "company_id": "c1", "make": "Ford", "model": "Transit", "year": 2020}
    data.update(overrides)
    return VehicleResponse(**data)


class TestPureHelpers:

    async def test_count_by_status_treats_missing_status_as_available(self):
        counts = count_by_status([
            make_vehicle(status="available"),
            make_vehicle(status=None),
            make_vehicle(status="maintenance"),
            make_vehicle(status="in-use"),
        ])
        assert counts == {"available": 2, "in-use": 1, "maintenance": 1}

    async def test_due_by_date_or_mileage(self):
        cutoff = TODAY + timedelta(days=30)
        assert is_due_for_maintenance(make_vehicle(next_service_date=TODAY + timedelta(days=10)), cutoff)
        assert not is_due_for_maintenance(make_vehicle(next_service_date=cutoff), cutoff)
        assert is_due_for_maintenance(make_vehicle(mileage=50000, next_service_mileage=50000), cutoff)
        assert not is_due_for_maintenance(make_vehicle(mileage=49999, next_service_mileage=50000), cutoff)
        assert not is_due_for_maintenance(
            make_vehicle(status="out-of-service", next_service_date=TODAY), cutoff
        )


class TestVehiclePaging:

    async def test_page_reports_total_and_slices(self, services, admin_ctx, create_vehicle):
        for n in range(5):
            await create_vehicle(vin=f"VIN{n:014d}", license_plate=f"TRK-{n}")

        first = await services.vehicles.get_vehicles(admin_ctx, page=1, limit=2)
        last = await services.vehicles.get_vehicles(admin_ctx, page=3, limit=2)

        assert first.data.total == 5
        assert len(first.data.items) == 2
        assert len(last.data.items) == 1
        assert last.data.meta.total_pages == 3
        assert last.data.meta.has_next is False

    async def test_page_filters_and_search(self, services, admin_ctx, create_vehicle):
        await create_vehicle()
        await create_vehicle(make="Ford", model="Transit", vin="1FTBW2CM5HKA00001", license_plate="VAN-7", vehicle_type="van")
        await create_vehicle(
            make="Ford", model="F-150", vin="1FTEW1EP5JFA00002", license_plate="PU-3", vehicle_type="pickup", status="maintenance"
        )

        fords = await services.vehicles.get_vehicles(admin_ctx, search="ford")
        assert fords.data.total == 2

        vans = await services.vehicles.get_vehicles(admin_ctx, vehicle_type="van")
        assert [v.model for v in vans.data.items] == ["Transit"]

        in_shop = await services.vehicles.get_vehicles(admin_ctx, status="maintenance", search="F-150")
        assert [v.model for v in in_shop.data.items] == ["F-150"]

    async def test_page_rejects_unknown_status(self, services, admin_ctx):
        result = await services.vehicles.get_vehicles(admin_ctx, status="parked")
        assert result.error.kind is ErrorKind.VALIDATION_ERROR

    async def test_status_counts(self, services, admin_ctx, create_vehicle):
        await create_vehicle()
        await create_vehicle(vin="VIN00000000000002", license_plate="TRK-2", status="in-use")
        await create_vehicle(vin="VIN00000000000003", license_plate="TRK-3", status="in-use")

        counts = await services.vehicles.get_status_counts(admin_ctx)
        assert counts.data == {"available": 1, "in-use": 2}


class TestVehicleOperations:

    async def test_update_status_records_notes_and_time(self, services, admin_ctx, create_vehicle):
        vehicle = await create_vehicle()
        result = await services.vehicles.update_status(admin_ctx, vehicle.id, "maintenance", "Brake pads")
        assert result.data.status == "maintenance"
        assert result.data.status_notes == "Brake pads"
        assert result.data.status_updated_at is not None

    async def test_update_status_rejects_unknown_status(self, services, admin_ctx, create_vehicle):
        vehicle = await create_vehicle()
        result = await services.vehicles.update_status(admin_ctx, vehicle.id, "parked")
        assert result.error.kind is ErrorKind.VALIDATION_ERROR

    async def test_odometer_never_goes_backwards(self, services, admin_ctx, create_vehicle):
        vehicle = await create_vehicle(mileage=42000)
        assert (await services.vehicles.update_odometer(admin_ctx, vehicle.id, 42500)).data.mileage == 42500
        result = await services.vehicles.update_odometer(admin_ctx, vehicle.id, 41000)
        assert result.error.kind is ErrorKind.VALIDATION_ERROR

    async def test_assign_active_driver(self, services, admin_ctx, create_vehicle, create_driver):
        vehicle = await create_vehicle()
        driver = await create_driver()
        assigned = await services.vehicles.assign_driver(admin_ctx, vehicle.id, driver.id)
        assert assigned.data.assigned_driver_id == driver.id

        cleared = await services.vehicles.assign_driver(admin_ctx, vehicle.id, None)
        assert cleared.data.assigned_driver_id is None

    async def test_assign_inactive_driver_is_rejected(self, services, admin_ctx, create_vehicle, create_driver):
        vehicle = await create_vehicle()
        driver = await create_driver(status="suspended")
        result = await services.vehicles.assign_driver(admin_ctx, vehicle.id, driver.id)
        assert result.error.kind is ErrorKind.VALIDATION_ERROR

    async def test_driver_on_another_vehicle_is_refused(self, services, admin_ctx, create_vehicle, create_driver):
        driver = await create_driver()
        first = await create_vehicle(assigned_driver_id=driver.id)
        second = await create_vehicle(vin="WD3PE8CC5F5987654", license_plate="VAN-202")

        result = await services.vehicles.assign_driver(admin_ctx, second.id, driver.id)

        assert result.error.kind is ErrorKind.VALIDATION_ERROR
        assert result.error.code == "driver_already_assigned"
        assert first.id in result.error.message
        assert (await services.vehicles.get_by_id(admin_ctx, second.id)).data.assigned_driver_id is None

    async def test_assign_driver_of_other_tenant_is_not_found(
        self, services, admin_ctx, other_ctx, create_vehicle, create_driver
    ):
        vehicle = await create_vehicle()
        driver = await create_driver(other_ctx)
        result = await services.vehicles.assign_driver(admin_ctx, vehicle.id, driver.id)
        assert result.error.kind is ErrorKind.NOT_FOUND

    async def test_due_for_maintenance_sorted_soonest_first(self, services, admin_ctx, create_vehicle):
        await create_vehicle(model="Later", vin="V1", license_plate="P1", next_service_date=(TODAY + timedelta(days=20)).isoformat())
        await create_vehicle(model="Sooner", vin="V2", license_plate="P2", next_service_date=(TODAY + timedelta(days=5)).isoformat())
        await create_vehicle(model="Far", vin="V3", license_plate="P3", next_service_date=(TODAY + timedelta(days=60)).isoformat())
        await create_vehicle(model="Worn", vin="V4", license_plate="P4", mileage=80000, next_service_mileage=75000)

        result = await services.vehicles.get_due_for_maintenance(admin_ctx, 30, today=TODAY)
        assert [v.model for v in result.data] == ["Sooner", "Later", "Worn"]

    async def test_maintenance_record_advances_last_service(self, services, admin_ctx, create_vehicle):
        vehicle = await create_vehicle(mileage=42000)
        record = await services.vehicles.create_maintenance_record(
            admin_ctx,
            vehicle.id,
            {"service_type": "Oil change", "service_date": "2026-02-20", "cost": "189.50", "mileage": 43000},
        )
        assert record.ok
        assert record.data.vehicle_id == vehicle.id
        assert record.data.company_id == admin_ctx.tenant_id

        refreshed = await services.vehicles.get_by_id(admin_ctx, vehicle.id)
        assert refreshed.data.last_service_date == date(2026, 2, 20)
        assert refreshed.data.mileage == 43000

        history = await services.vehicles.get_maintenance_history(admin_ctx, vehicle.id)
        assert [r.service_type for r in history.data] == ["Oil change"]

    async def test_maintenance_record_for_unknown_vehicle(self, services, admin_ctx):
        result = await services.vehicles.create_maintenance_record(
            admin_ctx, "does-not-exist", {"service_type": "Oil change", "service_date": "2026-02-20"}
        )
        assert result.error.kind is ErrorKind.NOT_FOUND

    async def test_deleting_vehicle_removes_history(self, services, admin_ctx, create_vehicle):
        vehicle = await create_vehicle()
        await services.vehicles.create_maintenance_record(
            admin_ctx, vehicle.id, {"service_type": "Inspection", "service_date": "2026-01-10"}
        )
        assert (await services.vehicles.delete(admin_ctx, vehicle.id)).ok
        history = await services.vehicles.get_maintenance_history(admin_ctx, vehicle.id)
        assert history.data == []
