# ── Auth & company ────────────────────────────────────────────
from fleetdesk.routes.auth_router import router as auth_router
from fleetdesk.routes.company_router import router as company_router

# ── Fleet ─────────────────────────────────────────────────────
from fleetdesk.routes.driver_router import router as driver_router
from fleetdesk.routes.vehicle_router import router as vehicle_router
from fleetdesk.routes.assignment_router import router as assignment_router

# ── Documents & storage ───────────────────────────────────────
from fleetdesk.routes.document_router import router as document_router
from fleetdesk.routes.storage_router import router as storage_router
