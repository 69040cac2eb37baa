"""Tests for scoped upload handling."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from docanchor_api.errors import DocumentTooLargeError
from docanchor_api.workflows.uploads import read_upload


def _upload(data: bytes):
    upload = MagicMock()
    upload.read = AsyncMock(return_value=data)
    upload.close = AsyncMock()
    return upload


def test_upload_read_and_closed():
    upload = _upload(b"report body")

    async def run():
        async with read_upload(upload, max_bytes=100) as data:
            return data

    assert asyncio.run(run()) == b"report body"
    upload.read.assert_awaited_once_with(101)
    upload.close.assert_awaited_once()


def test_oversized_upload_is_closed():
    upload = _upload(b"x" * 11)

    async def run():
        async with read_upload(upload, max_bytes=10):
            pass

    with pytest.raises(DocumentTooLargeError):
        asyncio.run(run())
    upload.close.assert_awaited_once()


def test_upload_closed_when_body_raises():
    upload = _upload(b"report body")

    async def run():
        async with read_upload(upload, max_bytes=100):
            raise RuntimeError("digest failed")

    with pytest.raises(RuntimeError):
        asyncio.run(run())
    upload.close.assert_awaited_once()


def test_missing_upload_yields_none():
    async def run():
        async with read_upload(None, max_bytes=100) as data:
            return data

    assert asyncio.run(run()) is None
