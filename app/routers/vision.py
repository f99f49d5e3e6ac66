from fastapi import APIRouter, Depends

from app.dependencies import Services, get_services
from app.errors import MissingInput
from app.schemas.media import ImageInput, MediaReference

router = APIRouter()


def _require_image(body: ImageInput) -> MediaReference:
    ref = body.reference()
    if ref is None:
        raise MissingInput("imageUrl or imageBase64 is required")
    return ref


@router.post("/vision/analyze")
async def analyze(body: ImageInput, services: Services = Depends(get_services)):
    extraction = await services.pipeline.analyze(_require_image(body), body.prompt)
    return {"attributes": extraction.attributes.as_dict(), "degraded": extraction.degraded}


@router.post("/by-image/search")
async def search_by_image(body: ImageInput, services: Services = Depends(get_services)):
    outcome = await services.pipeline.run(_require_image(body), body.prompt)
    response = {
        "attributes": outcome.extraction.attributes.as_dict(),
        "degraded": outcome.extraction.degraded,
        "query": outcome.query,
        "results": [item.model_dump() for item in outcome.catalog.results],
    }
    if outcome.catalog.note:
        response["note"] = outcome.catalog.note
    return response
