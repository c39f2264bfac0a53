"""
FastAPI Router for the Football Highlights API
"""

from fastapi import APIRouter

# Import sub-routers
from src.api.auth import router as auth_router
from src.api.catalog import router as catalog_router
from src.api.interactions import router as interactions_router
from src.api.search import router as search_router


# Main router
router = APIRouter()

# Include sub-routers (they carry their own prefixes)
router.include_router(auth_router)  # Subscription gate: login, callback, status, webhook, logout
router.include_router(catalog_router)  # Categories and video listings
router.include_router(search_router)  # Search, autosuggest, filter options
router.include_router(interactions_router)  # Saved / loved / favorite matches
