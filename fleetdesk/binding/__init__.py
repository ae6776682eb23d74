from fleetdesk.binding.assignments import AssignmentBinding
from fleetdesk.binding.base import COMPANY_STATS, EntityBinding
from fleetdesk.binding.companies import CompanyBinding
from fleetdesk.binding.documents import DocumentBinding
from fleetdesk.binding.drivers import DriverBinding
from fleetdesk.binding.mutation import Mutation, MutationStatus
from fleetdesk.binding.query_client import QueryClient, QueryEntry, QueryKey, QueryStatus
from fleetdesk.binding.vehicles import VehicleBinding

__all__ = [
    "AssignmentBinding",
    "COMPANY_STATS",
    "CompanyBinding",
    "DocumentBinding",
    "DriverBinding",
    "EntityBinding",
    "Mutation",
    "MutationStatus",
    "QueryClient",
    "QueryEntry",
    "QueryKey",
    "QueryStatus",
    "VehicleBinding",
]
