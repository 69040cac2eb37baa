"""Scoped handling of uploaded documents."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import UploadFile

from docanchor_api.errors import DocumentTooLargeError


@asynccontextmanager
async def read_upload(upload: Optional[UploadFile], max_bytes: int) -> AsyncIterator[Optional[bytes]]:
    """Read an upload into memory and discard its scratch file on exit.

    The upload is closed on every exit path, including errors raised by
    the caller inside the ``async with`` block.
    """
    try:
        if upload is None:
            yield None
            return
        data = await upload.read(max_bytes + 1)
        if len(data) > max_bytes:
            raise DocumentTooLargeError(
                f"Uploaded document exceeds the {max_bytes} byte limit"
            )
        yield data
    finally:
        if upload is not None:
            await upload.close()
