from fastapi import APIRouter

from prep_coach.api.routes.evaluations import router as evaluations_router
from prep_coach.api.routes.translations import router as translations_router

api_router = APIRouter()
api_router.include_router(evaluations_router)
api_router.include_router(translations_router)


@api_router.get("/healthz")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
