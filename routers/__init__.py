from .approvals_api import router as approvals_api_router
from .assets_api import router as assets_api_router
from .departments_api import router as departments_api_router
from .admin_api import router as admin_api_router
from .announcements_api import router as announcements_api_router
from .notifications_api import router as notifications_api_router
from .reports_api import router as reports_api_router
from .public_api import router as public_api_router

# approvals first: /api/assets/pending-updates must win over /api/assets/{asset_id}
ALL_ROUTERS = (
    approvals_api_router,
    assets_api_router,
    departments_api_router,
    admin_api_router,
    announcements_api_router,
    notifications_api_router,
    reports_api_router,
    public_api_router,
)
