from datetime import date
from typing import Optional

from fleetdesk.binding.base import COMPANY_STATS, EntityBinding
from fleetdesk.binding.query_client import QueryClient
from fleetdesk.core.context import SessionContext
from fleetdesk.core.errors import Result
from fleetdesk.services.company_service import CompanyService


class CompanyBinding(EntityBinding):
    entity = "companies"
    service: CompanyService

    def __init__(self, service: CompanyService, client: QueryClient, ctx: SessionContext):
        super().__init__(service, client, ctx)
        self.update_current = self.mutation(service.update_current)
        self.update_settings = self.mutation(service.update_settings)

    async def current(self, *, force: bool = False) -> Result:
        return await self.query(
            self.key("current"),
            lambda: self.service.get_current(self.ctx),
            empty=None,
            force=force,
        )

    async def stats(self, days_threshold: int = 30, today: Optional[date] = None) -> Result:
        today = today or date.today()
        return await self.query(
            self.key("stats", entity=COMPANY_STATS, days=days_threshold, today=today),
            lambda: self.service.get_stats(self.ctx, days_threshold, today),
            empty=None,
        )
