import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from retail_panel.app.api.v1.router import router as v1_router
from retail_panel.app.core.config import get_settings
from retail_panel.app.core.errors import RetailPanelError
from retail_panel.app.core.logging import configure_logging

configure_logging(get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Retail Panel", version="0.1.0")
app.include_router(v1_router, prefix="/v1")


@app.exception_handler(RetailPanelError)
async def handle_domain_error(request: Request, exc: RetailPanelError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})
