from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app import config
from app.routers.stats import router as stats_router
from app.routers.survey import router as survey_router
from app.services.record_store import StorageError
from app.services.survey import build_survey_service
from app.util.logging import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    service = build_survey_service()
    app.state.survey_service = service
    # Preload stats so the first dashboard request doesn't pay for a full pass
    try:
        service.warm_up()
    except StorageError as e:
        logger.warning(f"Initial stats preload failed: {e.__cause__ or e}")
    yield


app = FastAPI(title="Questionnaire Backend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True, allow_methods=["*"], allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(survey_router)
app.include_router(stats_router)
