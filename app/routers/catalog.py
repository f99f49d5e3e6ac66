from fastapi import APIRouter, Depends

from app.dependencies import Services, get_services
from app.errors import MissingInput
from app.schemas.catalog import CatalogSearchRequest

router = APIRouter(prefix="/catalog")


@router.post("/search")
async def search(body: CatalogSearchRequest, services: Services = Depends(get_services)):
    query = (body.query or "").strip()
    if not query:
        raise MissingInput("query is required")

    result = await services.catalog.search(query)
    response = {"results": [item.model_dump() for item in result.results], "query": query}
    if result.note:
        response["note"] = result.note
    return response
