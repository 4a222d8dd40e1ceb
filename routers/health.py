from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

health_router = APIRouter(tags=["health"])


@health_router.get("/health")
async def health():
    return {"status": "ok"}


@health_router.get("/", response_class=PlainTextResponse)
async def index():
    return "Server is started"
