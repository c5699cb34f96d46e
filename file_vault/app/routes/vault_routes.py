from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import HTMLResponse, PlainTextResponse, StreamingResponse
from starlette.datastructures import UploadFile

from file_vault.app.rendering import render_listing
from file_vault.app.services.auth_gate import protect
from file_vault.app.services.storage_manager import InvalidFilenameError, UploadTooLargeError
from file_vault.config import Credentials
from file_vault.logger_config import setup_logger

logger = setup_logger()


def content_disposition(filename: str) -> str:
    """Build an attachment Content-Disposition header value for ``filename``."""
    try:
        filename.encode('ascii')
    except UnicodeEncodeError:
        fallback = quote_header_value(filename.encode('ascii', 'replace').decode('ascii'))
        return f'attachment; filename="{fallback}"; filename*=UTF-8\'\'{quote(filename, safe="")}'
    return f'attachment; filename="{quote_header_value(filename)}"'


def quote_header_value(value: str) -> str:
    # Backslash-escape characters that would end or break a quoted-string
    return value.replace('\\', '\\\\').replace('"', '\\"')


async def list_files(request: Request):
    """Render every stored file, newest first, as an HTML list."""
    storage_manager = request.app.state.storage_manager

    files, error = await storage_manager.list_files()
    if error is not None:
        # The partial listing is still shown, followed by the error
        return HTMLResponse(render_listing(files, error), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTMLResponse(render_listing(files))


async def upload_file(request: Request):
    """Store the multipart ``file`` field under ``filename`` or its original name.

    Form fields:
        file: The file to upload (required)
        filename: Name to store it under (optional)
    """
    storage_manager = request.app.state.storage_manager

    content_length = request.headers.get("content-length", "")
    if content_length.isdigit() and int(content_length) > storage_manager.max_upload_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Error: request body exceeds maximum upload size of {storage_manager.max_upload_size} bytes",
        )

    async with request.form() as form:
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Error: no file in form field 'file'")

        filename = form.get("filename")
        if not isinstance(filename, str) or not filename:
            filename = upload.filename or ""

        logger.info(f"Receiving upload request for filename: {filename}")

        try:
            size = await storage_manager.save_upload(filename, upload)
        except (InvalidFilenameError, UploadTooLargeError) as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Error: {str(e)}")
        except OSError as e:
            logger.error(f"Error uploading {filename}: {str(e)}", exc_info=True)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Error: {str(e)}")

    logger.info(f"Stored {filename} ({size} bytes)")
    return PlainTextResponse("File uploaded successfully.\n")


async def download_file(request: Request, filename: Optional[str] = None):
    """Stream a stored file back as an attachment."""
    storage_manager = request.app.state.storage_manager

    if not filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Filename not provided")

    logger.info(f"Receiving download request for filename: {filename}")

    # Any open failure, including a missing file, is reported as a bad request
    try:
        file = await storage_manager.open_for_read(filename)
    except (InvalidFilenameError, OSError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Error: {str(e)}")

    return StreamingResponse(
        storage_manager.iter_file(file),
        media_type="application/octet-stream",
        headers={"Content-Disposition": content_disposition(filename)},
    )


def build_router(credentials: Credentials) -> APIRouter:
    """Register the vault routes, putting upload and download behind Basic auth."""
    router = APIRouter()
    router.add_api_route("/", list_files, methods=["GET"], response_class=HTMLResponse)
    router.add_api_route("/upload", upload_file, methods=["POST"], dependencies=protect(credentials))
    router.add_api_route("/download", download_file, methods=["GET"], dependencies=protect(credentials))
    return router
