from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from commission_engine.core.config import settings
from commission_engine.core.errors import CommissionError
from commission_engine.core.logging import configure_logging
import commission_engine.models  # noqa: F401  # force model registration

from commission_engine.api.v1.commission_sales import router as commission_sales_router
from commission_engine.api.v1.distributions import router as distributions_router
from commission_engine.api.v1.partners import router as partners_router
from commission_engine.api.v1.commission_config import router as commission_config_router
from commission_engine.api.v1.commission_rules import router as commission_rules_router


def create_application() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="Commission Engine API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CommissionError)
    async def commission_error_handler(request: Request, exc: CommissionError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})

    @app.get("/")
    def root():
        return {"status": "ok", "service": "commission-engine"}

    # Routers
    app.include_router(commission_sales_router, prefix="/api/v1")
    app.include_router(distributions_router, prefix="/api/v1")
    app.include_router(partners_router, prefix="/api/v1")
    app.include_router(commission_config_router, prefix="/api/v1")
    app.include_router(commission_rules_router, prefix="/api/v1")

    return app


app = create_application()
