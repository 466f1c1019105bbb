from fastapi import APIRouter

from propertyhub.api.v1.endpoints.health import router as health_router
from propertyhub.api.v1.endpoints.users import router as users_router
from propertyhub.api.v1.endpoints.property_units import router as property_units_router
from propertyhub.api.v1.endpoints.properties import router as properties_router
from propertyhub.api.v1.endpoints.admin_listings import router as admin_listings_router
from propertyhub.api.v1.endpoints.agents import router as agents_router
from propertyhub.api.v1.endpoints.admin_agents import router as admin_agents_router
from propertyhub.api.v1.endpoints.batches import router as batches_router
from propertyhub.api.v1.endpoints.clicks import router as clicks_router
from propertyhub.api.v1.endpoints.enquiries import router as enquiries_router
from propertyhub.api.v1.endpoints.likes import router as likes_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(users_router, tags=["users"])
router.include_router(property_units_router, tags=["property-units"])
router.include_router(properties_router, tags=["properties"])
router.include_router(admin_listings_router, tags=["admin-listings"])
router.include_router(agents_router, tags=["agents"])
router.include_router(admin_agents_router, tags=["admin-agents"])
router.include_router(batches_router, tags=["property-batches"])
router.include_router(clicks_router, tags=["clicks"])
router.include_router(enquiries_router, tags=["enquiries"])
router.include_router(likes_router, tags=["likes"])
