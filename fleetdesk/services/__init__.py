from fleetdesk.platform.base import Platform
from fleetdesk.services.assignment_service import AssignmentService
from fleetdesk.services.auth_service import AuthService
from fleetdesk.services.company_service import CompanyService
from fleetdesk.services.document_service import DocumentService
from fleetdesk.services.driver_service import DriverService
from fleetdesk.services.vehicle_service import VehicleService


class Services:
    """Access-layer services bound to one platform."""

    def __init__(self, platform: Platform):
        self.platform = platform
        self.documents = DocumentService(platform.tables, platform.storage)
        self.drivers = DriverService(platform.tables, self.documents)
        self.vehicles = VehicleService(platform.tables)
        self.assignments = AssignmentService(platform.tables, self.vehicles)
        self.companies = CompanyService(platform.tables, self.drivers, self.vehicles)
        self.auth = AuthService(platform.auth, platform.tables, self.companies)
