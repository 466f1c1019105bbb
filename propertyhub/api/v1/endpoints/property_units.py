from propertyhub.api.v1.endpoints.listing_routes import build_listing_router
from propertyhub.models.property_unit import PropertyUnit
from propertyhub.schemas.listing import PropertyUnitCreate, PropertyUnitOut, PropertyUnitUpdate

router = build_listing_router(
    model=PropertyUnit,
    path="/property-units",
    create_schema=PropertyUnitCreate,
    update_schema=PropertyUnitUpdate,
    out_schema=PropertyUnitOut,
)
