from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import ServiceError
from app.core.logging import configure_logging
from app.routers import families, health, persons
from app.schemas.common import ErrorDetail, ResultEnvelope

configure_logging(settings.log_level)

app = FastAPI(
    title="Family Tree API",
    version="1.0.0",
    description="API for building family trees: families, roots, and their members.",
    # Served under /api at the edge; the custom /docs route below points Swagger at the prefixed schema.
    docs_url=None,
    root_path=settings.root_path,
)


@app.get("/docs", include_in_schema=False)
def swagger_ui():
    prefix = (settings.root_path or "").rstrip("/")
    openapi_url = f"{prefix}{app.openapi_url}"
    return get_swagger_ui_html(openapi_url=openapi_url, title=f"{app.title} - Docs")


@app.exception_handler(ServiceError)
def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    envelope = ResultEnvelope(
        status_code=exc.status_code,
        message=exc.message,
        data=exc.data,
        error=ErrorDetail(code=exc.code, message=exc.message),
    )
    return JSONResponse(status_code=exc.status_code, content=envelope.model_dump(mode="json"))


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(persons.router)
app.include_router(families.router)
