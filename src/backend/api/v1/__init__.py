"""
API v1 router aggregating all endpoints.
"""

from fastapi import APIRouter

from api.v1.assignments import router as assignments_router
from api.v1.catalog import router as catalog_router
from api.v1.compliance import router as compliance_router
from api.v1.my import router as my_router
from api.v1.vote_reports import router as vote_reports_router
from api.v1.warroom import router as warroom_router

router = APIRouter()

router.include_router(assignments_router, prefix="/delegates", tags=["Assignments"])
router.include_router(my_router, prefix="/my", tags=["Delegate"])
router.include_router(vote_reports_router, prefix="/vote-reports", tags=["Vote Reports"])
router.include_router(compliance_router, prefix="/compliance", tags=["Compliance"])
router.include_router(warroom_router, prefix="/warroom", tags=["War Room"])
router.include_router(catalog_router, prefix="/catalog", tags=["Catalog"])
