"""
Media conversion through external processes.

Images are re-encoded and thumbnailed with ImageMagick's ``convert``; video
thumbnails are a single frame grabbed with ``ffmpeg``. Both write JPEG to
stdout, which is either streamed straight into the response body or, for the
buffered path, collected and checked against the exit status first.
"""

import asyncio
import logging
import os
import shlex
from typing import AsyncIterator, List, Optional, Union

import anyio
from starlette.responses import Response, StreamingResponse

from .classify import CategoryKey, MediaType
from .errors import ConversionFailed, ConversionTimeout, NoStdoutError, SpawnError, UnsupportedMediaType

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536
JPEG_MEDIA_TYPE = 'image/jpeg'
THUMBNAIL_HEIGHT = 200
VIDEO_THUMBNAIL_OFFSET = '00:00:01.00'
VIDEO_THUMBNAIL_BOX = 320
DEFAULT_TIMEOUT = 60.0


# ============================================
# Command Lines
# ============================================

def image_command(path, binary: str = 'convert') -> List[str]:
    """Re-encode an image to JPEG on stdout."""
    return [binary, os.fspath(path), 'JPG:-']


def image_thumbnail_command(path, binary: str = 'convert') -> List[str]:
    """Auto-orient and shrink an image to a fixed height, JPEG on stdout."""
    return [binary, os.fspath(path), '-auto-orient', '-thumbnail', f'x{THUMBNAIL_HEIGHT}', 'JPG:-']


def video_thumbnail_command(path, binary: str = 'ffmpeg') -> List[str]:
    """Grab one frame one second in, fitted into a square box without upscaling."""
    box = VIDEO_THUMBNAIL_BOX
    return [
        binary,
        '-ss', VIDEO_THUMBNAIL_OFFSET,
        '-i', os.fspath(path),
        '-vf', f"scale='min({box},iw)':'min({box},ih)':force_original_aspect_ratio=decrease",
        '-frames:v', '1',
        '-f', 'image2',
        '-c:v', 'mjpeg',
        'pipe:1',
    ]


# ============================================
# Process Handling
# ============================================

async def _spawn(command, stderr) -> asyncio.subprocess.Process:
    logger.debug(f"Running {shlex.join(command)}")
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=stderr,
        )
    except OSError as e:
        raise SpawnError(command, e) from e

    if process.stdout is None:
        await _reap(process)
        raise NoStdoutError(command)
    return process


async def _reap(process: asyncio.subprocess.Process):
    """Kill the process if it is still running and wait for it to exit."""
    # Starlette cancels the body task when the client goes away; the wait
    # must still complete or the child is left as a zombie.
    with anyio.CancelScope(shield=True):
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()


async def _forward(process: asyncio.subprocess.Process, command, timeout: float) -> AsyncIterator[bytes]:
    try:
        while True:
            chunk = await asyncio.wait_for(process.stdout.read(CHUNK_SIZE), timeout)
            if not chunk:
                break
            yield chunk
        await asyncio.wait_for(process.wait(), timeout)
        if process.returncode:
            logger.warning(f"{command[0]} exited with status {process.returncode} after streaming")
    except asyncio.TimeoutError:
        logger.warning(f"{command[0]} stalled for {timeout}s, response truncated")
    finally:
        await _reap(process)


class ProcessStream:
    """Stdout of a running conversion process.

    The stream owns the process. Iterating it to the end or calling
    ``aclose()`` reaps the process; a stream dropped without either kills it.
    The exit status is not checked.
    """

    def __init__(self, process: asyncio.subprocess.Process, command, timeout: float):
        self.process = process
        self.command = list(command)
        self.timeout = timeout
        self._chunks = None

    def __aiter__(self) -> 'ProcessStream':
        return self

    async def __anext__(self) -> bytes:
        if self._chunks is None:
            self._chunks = _forward(self.process, self.command, self.timeout)
        return await self._chunks.__anext__()

    async def aclose(self):
        if self._chunks is not None:
            await self._chunks.aclose()
        await _reap(self.process)

    def __del__(self):
        if self.process.returncode is None:
            try:
                self.process.kill()
            except ProcessLookupError:
                pass


class ProcessResponse(StreamingResponse):
    """Streams a ProcessStream and reaps its process however the response ends."""

    def __init__(self, stream: ProcessStream, **kwargs):
        super().__init__(stream, **kwargs)
        self.stream = stream

    async def __call__(self, scope, receive, send):
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.stream.aclose()


async def open_stream(command, timeout: float = DEFAULT_TIMEOUT) -> ProcessStream:
    """Start ``command`` and return a stream over its stdout."""
    process = await _spawn(command, stderr=asyncio.subprocess.DEVNULL)
    return ProcessStream(process, command, timeout)


async def run_buffered(command, timeout: float = DEFAULT_TIMEOUT) -> bytes:
    """Run ``command`` to completion and return its stdout.

    Raises ConversionFailed with the captured output on a non-zero exit.
    """
    process = await _spawn(command, stderr=asyncio.subprocess.PIPE)
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError:
        raise ConversionTimeout(command, timeout) from None
    finally:
        await _reap(process)

    if process.returncode != 0:
        raise ConversionFailed(command, process.returncode, stdout, stderr)
    return stdout


# ============================================
# Responses
# ============================================

class Converter:
    """Builds JPEG responses for images and videos."""

    def __init__(self, convert_binary: str = 'convert', ffmpeg_binary: str = 'ffmpeg',
                 timeout: float = DEFAULT_TIMEOUT):
        self.convert_binary = convert_binary
        self.ffmpeg_binary = ffmpeg_binary
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> 'Converter':
        return cls(settings.convert_binary, settings.ffmpeg_binary, settings.conversion_timeout)

    def thumbnail_command(self, path: Union[str, os.PathLike], media_type: MediaType,
                          key: Optional[CategoryKey] = None) -> List[str]:
        if media_type is MediaType.IMAGE:
            return image_thumbnail_command(path, self.convert_binary)
        if media_type is MediaType.VIDEO:
            return video_thumbnail_command(path, self.ffmpeg_binary)
        raise UnsupportedMediaType(media_type, key)

    async def stream(self, command) -> ProcessResponse:
        body = await open_stream(command, self.timeout)
        return ProcessResponse(body, media_type=JPEG_MEDIA_TYPE, headers={'Cache-Control': 'no-cache'})

    async def buffered(self, command) -> Response:
        content = await run_buffered(command, self.timeout)
        return Response(content=content, media_type=JPEG_MEDIA_TYPE, headers={'Cache-Control': 'no-cache'})

    async def image(self, path) -> ProcessResponse:
        """Serve an image re-encoded as JPEG."""
        return await self.stream(image_command(path, self.convert_binary))

    async def thumbnail(self, path, media_type: MediaType, key: Optional[CategoryKey] = None,
                        verify: bool = False) -> Response:
        command = self.thumbnail_command(path, media_type, key)
        if verify:
            return await self.buffered(command)
        return await self.stream(command)
