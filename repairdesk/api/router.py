"""Central router that includes all sub-routers."""

from fastapi import APIRouter

from repairdesk.api.entries import router as entries_router
from repairdesk.api.images import router as images_router
from repairdesk.api.maintenance import router as maintenance_router
from repairdesk.api.company import router as company_router
from repairdesk.api.websocket import router as websocket_router

api_router = APIRouter()
api_router.include_router(entries_router)
api_router.include_router(images_router)
api_router.include_router(maintenance_router)
api_router.include_router(company_router)
api_router.include_router(websocket_router)
