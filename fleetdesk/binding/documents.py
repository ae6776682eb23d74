from datetime import date
from typing import Optional

from fleetdesk.binding.base import EntityBinding
from fleetdesk.binding.query_client import QueryClient
from fleetdesk.core.context import SessionContext
from fleetdesk.core.errors import Result
from fleetdesk.services.document_service import DocumentService


class DocumentBinding(EntityBinding):
    entity = "documents"
    service: DocumentService

    def __init__(self, service: DocumentService, client: QueryClient, ctx: SessionContext):
        super().__init__(service, client, ctx)
        self.request_upload = self.mutation(service.request_upload)
        self.review = self.mutation(service.review)
        self.expire = self.mutation(service.expire_documents)

    async def for_driver(self, driver_id: str) -> Result:
        return await self.query(
            self.key("for_driver", driver_id=driver_id),
            lambda: self.service.list_for_driver(self.ctx, driver_id),
            empty=[],
        )

    async def download(self, id: str, today: Optional[date] = None) -> Result:
        """Signed download reference; never cached since the URL expires."""
        if not self.enabled:
            return Result.success(None)
        return await self.service.get_download(self.ctx, id, today)
