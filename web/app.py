"""FastAPI service for interactive generation and the scheduled send trigger."""

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
import uvicorn

from soulthread.core.errors import InvalidRequestError, NoContentAvailableError
from soulthread.core.newsletter import NewsletterService
from soulthread.core.orchestrator import StreamingGeneration
from soulthread.models.content import GenerationRequest
from soulthread.models.settings import Settings

logger = logging.getLogger(__name__)

app = FastAPI(
    title="SoulThread",
    description="Personalized newsletter generation and scheduled delivery",
    version="1.0.0",
)


class EnhancedGenerateRequest(BaseModel):
    """Body of ``POST /api/enhanced-generate``."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    topic: Optional[str] = None
    use_real_time_data: bool = Field(True, alias="useRealTimeData")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


@lru_cache(maxsize=1)
def get_service() -> NewsletterService:
    return NewsletterService(get_settings())


@app.exception_handler(InvalidRequestError)
async def invalid_request_handler(request, exc: InvalidRequestError):
    logger.warning(f"Rejected generation request: {exc}")
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(NoContentAvailableError)
async def no_content_handler(request, exc: NoContentAvailableError):
    logger.error(f"No content available: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.get("/api/health")
async def health_check(service: NewsletterService = Depends(get_service)):
    """Health check endpoint."""
    status = service.service_status()
    return {
        "status": "healthy" if status["curated_dataset"] else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
        "services": status,
    }


@app.post("/api/ai-generate")
async def ai_generate(
    request: GenerationRequest, service: NewsletterService = Depends(get_service)
):
    """Generate a newsletter; streams plain text when the AI path streams."""
    result = await service.orchestrator.generate(request)
    if isinstance(result, StreamingGeneration):
        return StreamingResponse(
            result.chunks,
            media_type="text/plain; charset=utf-8",
            headers={"Cache-Control": "no-cache"},
        )
    return result.to_response()


@app.post("/api/enhanced-generate")
async def enhanced_generate(
    request: EnhancedGenerateRequest, service: NewsletterService = Depends(get_service)
):
    """Generate the sectioned digest."""
    result = await service.orchestrator.generate_enhanced_draft(
        request.user_id, topic=request.topic, use_real_time_data=request.use_real_time_data
    )
    return result.to_response()


def verify_cron_secret(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not settings.cron_secret or authorization != f"Bearer {settings.cron_secret}":
        logger.error("[Cron] Unauthorized access attempt")
        raise HTTPException(status_code=401, detail="Unauthorized")


@app.post("/api/cron/send-newsletters", dependencies=[Depends(verify_cron_secret)])
async def send_newsletters(service: NewsletterService = Depends(get_service)):
    """Run the hourly delivery for the current UTC hour."""
    summary = await service.scheduled_job.run()
    if not summary.get("success"):
        return JSONResponse(status_code=500, content=summary)
    return summary


@app.get("/api/cron/send-newsletters")
async def cron_status():
    """Liveness check for the cron endpoint; never sends anything."""
    now = datetime.now(timezone.utc)
    return {
        "message": "Cron endpoint active. Use POST with Bearer token to trigger.",
        "currentTime": now.isoformat(),
        "currentHour": now.hour,
    }


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
