import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import openai
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from app.core.config import Settings
from app.core.errors import BookEngineError, GenerationFailed, InvalidInput
from app.core.logging import configure_logging
from app.services.Create_Book.create_book_route import router as create_book_router
from app.services.Generate_Character.generate_character_route import router as generate_character_router
from app.services.Generate_Image.generate_image_route import router as generate_image_router

logger = logging.getLogger(__name__)

LANDING_PAGE = """<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"><title>AI Book Engine</title></head>
  <body>
    <h1>AI Book Engine is running</h1>
    <ul>
      <li>POST /generate-character</li>
      <li>POST /create-book</li>
      <li>POST /generate-image</li>
      <li>GET /generated/{file}</li>
    </ul>
    <p>API docs: <a href="/docs">/docs</a></p>
  </body>
</html>
"""


def create_app(settings: Optional[Settings] = None, openai_client: Optional[openai.AsyncOpenAI] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if openai_client is not None:
            app.state.openai_client = openai_client
        else:
            if not settings.openai_api_key:
                logger.warning("OPENAI_API_KEY not found in environment variables")
            else:
                logger.info("API configuration loaded successfully")
            # no in-process retries: callers resubmit on failure
            app.state.openai_client = openai.AsyncOpenAI(
                api_key=settings.openai_api_key or "",
                timeout=settings.upstream_timeout,
                max_retries=0,
            )

        yield

        if openai_client is None:
            await app.state.openai_client.close()

    # Generated illustrations must be servable before the first request
    os.makedirs(settings.generated_dir, exist_ok=True)

    app = FastAPI(
        title="AI Book Engine",
        description="Personalized 10-page children's storybooks with AI text and illustrations",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(generate_character_router, tags=["Character"])
    app.include_router(create_book_router, tags=["Book"])
    app.include_router(generate_image_router, tags=["Illustration"])
    app.mount(
        settings.generated_url_prefix,
        StaticFiles(directory=str(settings.generated_dir)),
        name="generated",
    )

    @app.exception_handler(BookEngineError)
    async def book_engine_error_handler(request: Request, exc: BookEngineError):
        logger.error(
            f"{request.method} {request.url.path} failed: {exc.message}"
            + (f" ({exc.detail})" if exc.detail else ""),
            extra={"code": exc.code, "error_type": type(exc).__name__},
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = []
        for error in exc.errors():
            if error.get("type") == "json_invalid":
                continue
            name = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            if name and name not in fields:
                fields.append(name)
        message = "Missing or invalid fields: " + ", ".join(fields) if fields else "Invalid request body"
        error = InvalidInput(message)
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        error = GenerationFailed("Unexpected server error")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.get("/", response_class=HTMLResponse)
    async def root():
        """Landing page"""
        return LANDING_PAGE

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "message": "API is running"}

    return app


def build_app() -> FastAPI:
    """Load settings from the environment, configure logging and build the app.

    Entry point for uvicorn: `uvicorn main:build_app --factory`.
    """
    settings = Settings.from_env()
    configure_logging(json_format=settings.log_json, level=settings.log_level)
    return create_app(settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:build_app", factory=True, host="0.0.0.0", port=Settings.from_env().port, reload=False)
