"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from converter.api.routes import router
from converter.config import CORS_ORIGINS, logger as config_logger
from converter.conversion.capabilities import probe_capabilities
from converter.conversion.service import init_conversion_service

logging.getLogger("uvicorn").setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Encoder support does not change while the process runs; probe once and inject
    caps = probe_capabilities()
    app.state.capabilities = caps
    init_conversion_service(caps)
    for note in caps.notes():
        config_logger.info(note)
    config_logger.info("Size-budget converter ready")
    yield
    config_logger.info("Size-budget converter stopping")


app = FastAPI(
    title="Size-Budget Image Converter API",
    description="Convert images to JPEG, PNG, WebP or AVIF, searching encoder quality to fit a target file size.",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
    expose_headers=["X-Session-ID", "Content-Disposition"],
)


@app.middleware("http")
async def echo_new_session_id(request: Request, call_next):
    """Return a freshly generated X-Session-ID so the client can reuse it for downloads."""
    response = await call_next(request)
    session_id = getattr(request.state, "session_id", None)
    if session_id:
        response.headers["X-Session-ID"] = session_id
    return response


app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    from converter.config import HOST, PORT
    uvicorn.run("converter.main:app", host=HOST, port=PORT, reload=True)
