from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from ndc_calculator.api.routes_calculate import error_response, router as calculate_router
from ndc_calculator.core.logging_config import configure_logging
from ndc_calculator.core.state import SharedState, build_shared_state

SERVICE_NAME = "NDC Quantity Calculator"


def create_app(shared: SharedState | None = None) -> FastAPI:
    """An app owns its shared state unless one is handed in (tests)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        owned = shared is None
        app.state.shared = shared or build_shared_state()
        try:
            yield
        finally:
            if owned:
                app.state.shared.close()

    app = FastAPI(title=SERVICE_NAME, version="1.0", lifespan=lifespan)
    app.include_router(calculate_router)

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()]
        return error_response("INVALID_INPUT", details={"fields": fields})

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/")
    def root():
        return {"ok": True, "service": SERVICE_NAME}

    return app


app = create_app()
