from fastapi import APIRouter

from propertyhub.api.v1.endpoints.listing_routes import build_admin_router
from propertyhub.models.property import Property
from propertyhub.models.property_unit import PropertyUnit
from propertyhub.schemas.listing import PropertyOut, PropertyUnitOut

router = APIRouter()
router.include_router(build_admin_router(model=PropertyUnit, path="/property-units", out_schema=PropertyUnitOut))
router.include_router(build_admin_router(model=Property, path="/properties", out_schema=PropertyOut))
