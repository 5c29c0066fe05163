import sys
import logging
from contextlib import asynccontextmanager

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bookcircle import settings
from bookcircle.database import create_tables, create_bucket
from bookcircle.routes import auth, book, cart, chatbot, message, user

logger = logging.getLogger(__name__)


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.CREATE_TABLES_ON_STARTUP:
        create_tables()
        create_bucket()
    yield


def _first_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    field = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
    if errors[0].get("type") == "missing":
        return f"Missing field: {field}" if field else "Missing fields"
    return f"Invalid field: {field}" if field else "Invalid request"


def register_error_handlers(app: FastAPI):
    # Missing or malformed input is a plain 400 for clients
    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": _first_error(exc)})

    @app.exception_handler(ClientError)
    @app.exception_handler(BotoCoreError)
    async def storage_error(request: Request, exc: Exception):
        logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="BookCircle", lifespan=lifespan)
    app.include_router(auth.router, tags=["Authentication"])
    app.include_router(user.router, prefix="/users", tags=["User"])
    app.include_router(book.router, prefix="/books", tags=["Books"])
    app.include_router(cart.router, prefix="/cart", tags=["Cart"])
    app.include_router(message.router, prefix="/messages", tags=["Messages"])
    app.include_router(chatbot.router, prefix="/chatbot", tags=["Chatbot"])
    register_error_handlers(app)

    @app.get("/")
    def root():
        return {"message": "BookCircle Running"}

    return app


app = create_app()


def run():
    import uvicorn

    uvicorn.run("bookcircle.main:app", host="0.0.0.0", port=int(settings.PORT))
