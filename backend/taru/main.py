import logging
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taru.config import Settings, get_settings
from taru.errors import TaruError
from taru.routes import assessment, auth, learning_paths, session
from taru.services.assessments import AssessmentStore
from taru.services.database import DatabaseClient
from taru.services.learning_paths import LearningPathStore
from taru.services.session.manager import SessionManager
from taru.services.webhook import AutomationWebhookClient

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None, db_client: Optional[DatabaseClient] = None
) -> FastAPI:
    """Build the API; tests pass their own settings and database client."""
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        client = db_client or DatabaseClient(
            settings.mongodb_uri, settings.database_name
        )
        try:
            await client.init_indexes()

            app.state.settings = settings
            app.state.db_client = client
            app.state.session_manager = SessionManager(
                client, settings.navigation_history_limit
            )
            app.state.learning_path_store = LearningPathStore(client)
            app.state.assessment_store = AssessmentStore(client)
            app.state.webhook_client = AutomationWebhookClient(
                settings.learning_path_webhook_url,
                settings.webhook_timeout_seconds,
            )
            logger.info(
                f"Initialized services on database '{settings.database_name}' "
                f"({settings.environment})"
            )
        except Exception as e:
            logger.error(f"Failed to initialize: {str(e)}")
            raise
        yield
        client.close()

    app = FastAPI(
        title="Taru API",
        description="Sessions, progress and learning paths for the Taru platform",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TaruError)
    async def taru_error_handler(request: Request, exc: TaruError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ):
        errors = exc.errors()
        message = errors[0].get("msg") if errors else None
        return JSONResponse(
            status_code=400, content={"error": message or "Invalid request"}
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}")
        logger.error(traceback.format_exc())
        return JSONResponse(
            status_code=500, content={"error": "Internal server error"}
        )

    app.include_router(auth.router)
    app.include_router(session.router)
    app.include_router(learning_paths.router)
    app.include_router(assessment.router)

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
