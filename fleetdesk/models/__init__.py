# Import all models here for easier access
from fleetdesk.models.auth_user import AuthUser
from fleetdesk.models.company import Company, DistanceUnitEnum, FuelUnitEnum
from fleetdesk.models.profile import Profile, UserRoleEnum
from fleetdesk.models.driver import Driver, DriverStatusEnum, LicenseClassEnum
from fleetdesk.models.vehicle import Vehicle, VehicleStatusEnum
from fleetdesk.models.maintenance import MaintenanceRecord
from fleetdesk.models.document import Document, DocumentTypeEnum, DocumentStatusEnum
from fleetdesk.models.assignment import DriverAssignment, AssignmentStatusEnum

# Platform tables by name, as addressed through the table-query interface.
# auth_users is only reachable through the auth interface.
TABLES = {
    model.__tablename__: model
    for model in (Company, Profile, Driver, Vehicle, MaintenanceRecord, Document, DriverAssignment)
}
