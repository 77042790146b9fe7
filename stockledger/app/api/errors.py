from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stockledger.services.errors import StockError


def setup_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(StockError)
    async def stock_error_handler(request: Request, exc: StockError):
        # message goes out verbatim, the UI shows it as is
        return JSONResponse(
            status_code=exc.http_status,
            content={"detail": exc.message, "code": exc.code},
        )
