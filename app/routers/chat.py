from fastapi import APIRouter, Depends

from app.dependencies import Services, get_services
from app.schemas.chat import ChatRequest, ChatResponse

router = APIRouter(prefix="/chat")


@router.post("/complete", response_model=ChatResponse)
async def complete(body: ChatRequest, services: Services = Depends(get_services)):
    return await services.chat.complete(body)
