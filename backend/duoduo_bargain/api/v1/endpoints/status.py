"""
Status and health check endpoints.

WHAT: Health monitoring for the database and chat configuration
WHY: Quick diagnostics for the client and ops
HOW: FastAPI endpoint calling the database ping
"""

from fastapi import APIRouter

from ....core.database import ping_database
from ....core.config import settings
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Overall application health check.

    Returns:
        JSON with database status, chat endpoint and negotiation limits
    """
    db_status = ping_database()
    if not db_status["available"]:
        logger.warning("Health check: database unavailable")

    return {
        "status": "healthy" if db_status["available"] else "degraded",
        "version": settings.APP_VERSION,
        "app_name": settings.APP_NAME,
        "components": {
            "database": {
                "available": db_status["available"],
                "error": db_status["error"]
            },
            "chat": {
                "base_url": settings.CHAT_API_BASE,
                "model": settings.CHAT_MODEL
            }
        },
        "negotiation": {
            "max_exchanges": settings.MAX_BARGAIN_EXCHANGES,
            "exchange_delay_ms": settings.EXCHANGE_DELAY_MS
        }
    }
