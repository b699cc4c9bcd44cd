import logging
import mimetypes
import os
from urllib.parse import unquote_to_bytes

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.responses import Response

from .classify import MediaType, classify_path
from .config import Settings
from .convert import Converter
from .errors import ConversionError, ConversionFailed, UnsupportedMediaType
from .grouping import group_directory, list_directory
from .render import render_by_type, render_flat

logger = logging.getLogger(__name__)

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'static')

MIME_TYPE_MAP = {
    '.mp4': 'video/mp4', '.m4v': 'video/mp4', '.webm': 'video/webm',
    '.mkv': 'video/x-matroska', '.avi': 'video/x-msvideo',
    '.mov': 'video/quicktime',
}

# ============================================
# Helpers
# ============================================

def get_mime_type(file_path):
    """Get MIME type with explicit mappings"""
    ext = os.path.splitext(file_path.lower())[1]
    if ext in MIME_TYPE_MAP:
        return MIME_TYPE_MAP[ext]
    mime_type, _ = mimetypes.guess_type(file_path)
    return mime_type or 'application/octet-stream'


def resolve_path(root, file_path):
    """Join a request path onto the root, refusing anything that escapes it."""
    full_path = os.path.normpath(os.path.join(root, file_path))
    if os.path.commonpath([root, full_path]) != root:
        raise HTTPException(status_code=404, detail='Not found')
    return full_path


def request_path(request: Request, prefix: str, file_path: str) -> str:
    """Path parameter decoded with the filesystem encoding, so undecodable names round-trip."""
    raw_path = request.scope.get('raw_path')
    if not raw_path:
        return file_path
    decoded = os.fsdecode(unquote_to_bytes(raw_path.split(b'?', 1)[0]))
    if not decoded.startswith(prefix):
        return file_path
    return decoded[len(prefix):]


def read_directory(reader, path):
    try:
        return reader(path)
    except OSError as e:
        logger.error(f"Failed to read directory {path}: {e}")
        raise HTTPException(status_code=500, detail='Could not read directory')


async def respond_file(path, settings: Settings, converter: Converter) -> Response:
    """Serve a single file, re-encoding images as JPEG."""
    key = classify_path(path)
    if settings.media_table.media_type(key) is MediaType.IMAGE:
        return await converter.image(path)
    return FileResponse(path, media_type=get_mime_type(path))

# ============================================
# FastAPI App Setup
# ============================================

def create_app(settings: Settings) -> FastAPI:
    root = os.path.abspath(settings.root)
    converter = Converter.from_settings(settings)
    table = settings.media_table

    app = FastAPI(title='typebrowse')
    app.state.settings = settings
    app.mount('/static', StaticFiles(directory=STATIC_DIR), name='static')

    @app.exception_handler(UnsupportedMediaType)
    async def unsupported_media_type_handler(request: Request, exc: UnsupportedMediaType):
        return JSONResponse({'detail': str(exc)}, status_code=400)

    @app.exception_handler(ConversionError)
    async def conversion_error_handler(request: Request, exc: ConversionError):
        if isinstance(exc, ConversionFailed):
            logger.error(f"Conversion failed for {request.url.path}: {exc}\n{exc.output}")
        else:
            logger.error(f"Conversion error for {request.url.path}: {exc}")
        return JSONResponse({'detail': 'Conversion failed'}, status_code=500)

    @app.get('/')
    async def index():
        return RedirectResponse('/get/', status_code=303)

    if os.path.isfile(root):
        @app.get('/get/')
        async def serve_root_file():
            """Serve the single file the server was started with"""
            return await respond_file(root, settings, converter)

        return app

    if not os.path.isdir(root):
        raise FileNotFoundError(f"{root} not found")

    # ============================================
    # Directory Endpoints
    # ============================================

    @app.get('/get/{file_path:path}')
    async def get(request: Request, file_path: str):
        """Serve a directory ordered by name, or a single file"""
        full_path = resolve_path(root, request_path(request, '/get/', file_path))

        if os.path.isfile(full_path):
            return await respond_file(full_path, settings, converter)
        if not os.path.isdir(full_path):
            raise HTTPException(status_code=404, detail='Not found')

        entries = read_directory(list_directory, full_path)
        return HTMLResponse(render_flat(root, full_path, entries))

    @app.get('/by-type/{file_path:path}')
    async def by_type(request: Request, file_path: str):
        """Serve a directory grouped by type with thumbnails, or a single file"""
        full_path = resolve_path(root, request_path(request, '/by-type/', file_path))

        if os.path.isfile(full_path):
            return await respond_file(full_path, settings, converter)
        if not os.path.isdir(full_path):
            raise HTTPException(status_code=404, detail='Not found')

        groups = read_directory(group_directory, full_path)
        return HTMLResponse(render_by_type(root, full_path, groups, table))

    @app.get('/thumbnail/{file_path:path}')
    async def thumbnail(request: Request, file_path: str):
        """Thumbnail of an image or video"""
        full_path = resolve_path(root, request_path(request, '/thumbnail/', file_path))

        if not os.path.exists(full_path):
            raise HTTPException(status_code=404, detail='Not found')

        key = classify_path(full_path)
        return await converter.thumbnail(
            full_path, table.media_type(key), key, verify=settings.verify_thumbnails)

    return app


def app_from_env() -> FastAPI:
    """Entry point for ``uvicorn --factory typebrowse.app:app_from_env``."""
    logging.basicConfig(level=logging.INFO)
    return create_app(Settings.from_env())
