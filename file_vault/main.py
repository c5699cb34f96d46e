import sys
import time
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from file_vault import __version__, config
from file_vault.app.routes.vault_routes import build_router
from file_vault.app.services.storage_manager import StorageManager
from file_vault.config import ConfigError, VaultConfig
from file_vault.logger_config import enable_file_logging, setup_logger

logger = setup_logger()


def create_app(vault_config: VaultConfig) -> FastAPI:
    """Build the vault application around an explicit configuration."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.storage_manager = StorageManager(
            vault_config.upload_dir,
            vault_config.temp_dir,
            max_upload_size=vault_config.max_upload_size,
        )
        await app.state.storage_manager.initialize()
        yield

    app = FastAPI(title="File Vault Lite", version=__version__, lifespan=lifespan)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = str(uuid.uuid4())
        start_time = time.time()

        logger.info(f"Request started: {request.method} {request.url.path} [request_id={request_id}]")

        response = await call_next(request)

        duration = time.time() - start_time
        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
        )

        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(StarletteHTTPException)
    async def plain_text_http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.status_code} {exc.detail}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected: {exc.status_code} {exc.detail}")
        return PlainTextResponse(f"{exc.detail}\n", status_code=exc.status_code, headers=exc.headers)

    app.include_router(build_router(vault_config.credentials))
    return app


def main():
    enable_file_logging()

    try:
        vault_config = VaultConfig.from_env()
    except ConfigError as e:
        logger.error(f"Refusing to start: {str(e)}")
        sys.exit(1)

    logger.info("Starting File Vault Lite...")
    logger.info(f"Username: {vault_config.credentials.username}")
    logger.info(f"Upload directory: {vault_config.upload_dir}")
    logger.info(f"Maximum upload size: {vault_config.max_upload_size / (1024*1024):.2f} MB")

    # uvicorn exits the process if the listener cannot be bound
    uvicorn.run(create_app(vault_config), host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
