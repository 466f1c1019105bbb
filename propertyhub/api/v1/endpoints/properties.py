from propertyhub.api.v1.endpoints.listing_routes import build_listing_router
from propertyhub.models.property import Property
from propertyhub.schemas.listing import PropertyCreate, PropertyOut, PropertyUpdate

router = build_listing_router(
    model=Property,
    path="/properties",
    create_schema=PropertyCreate,
    update_schema=PropertyUpdate,
    out_schema=PropertyOut,
)
