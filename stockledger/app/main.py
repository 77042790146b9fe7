from fastapi import FastAPI

from stockledger.app.api.errors import setup_exception_handlers
from stockledger.app.api.v1.router import router as v1_router
from stockledger.app.core.config import settings
from stockledger.app.core.logging import configure_logging

configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)

app = FastAPI(title="Parts Stock Ledger", version="0.1.0")
setup_exception_handlers(app)
app.include_router(v1_router, prefix="/v1")
