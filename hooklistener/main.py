import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from hooklistener.api.deps import get_listener
from hooklistener.api.webhook_routes import router as webhook_router
from hooklistener.core.config import get_settings, settings
from hooklistener.core.exceptions import WebhookError
from hooklistener.services.webhook_listener import WebhookListener

logger = logging.getLogger(__name__)


async def webhook_error_handler(request: Request, exc: WebhookError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())


def create_app(listener: Optional[WebhookListener] = None) -> FastAPI:
    app = FastAPI(title=settings.PROJECT_NAME)
    app.include_router(webhook_router)
    app.add_exception_handler(WebhookError, webhook_error_handler)

    if listener is not None:
        app.dependency_overrides[get_listener] = lambda: listener

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


app = create_app()


def run() -> None:
    """Console entry point: load configuration and serve until interrupted"""
    current_settings = get_settings()
    logging.basicConfig(
        level=current_settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    listener = get_listener()
    if not listener.active:
        logger.info("server disabled")
        return

    logger.info(
        f"listening for webhook events on {listener.config.host}:{listener.config.port}"
    )
    uvicorn.run(
        create_app(listener),
        host=listener.config.host,
        port=listener.config.port,
        log_level=current_settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
