from unittest.mock import AsyncMock, patch

import httpx
import pytest

from ideagraph.core.exceptions import SourceFileError
from ideagraph.services.storage_service import StorageService


@pytest.fixture
def upload_root(tmp_path):
    (tmp_path / "project").mkdir()
    (tmp_path / "project" / "paper.pdf").write_bytes(b"%PDF-1.4 local")
    return tmp_path


@pytest.mark.asyncio
async def test_reads_local_file(upload_root):
    storage = StorageService(backend="local", upload_root=str(upload_root))
    assert await storage.fetch("project/paper.pdf") == b"%PDF-1.4 local"


@pytest.mark.asyncio
async def test_missing_local_file(upload_root):
    storage = StorageService(backend="local", upload_root=str(upload_root))
    with pytest.raises(SourceFileError, match="Missing local file for project/gone.pdf"):
        await storage.fetch("project/gone.pdf")


@pytest.mark.asyncio
async def test_rejects_paths_outside_upload_root(upload_root):
    storage = StorageService(backend="local", upload_root=str(upload_root / "project"))
    with pytest.raises(SourceFileError):
        await storage.fetch("../outside.pdf")


@pytest.mark.asyncio
async def test_empty_handle(upload_root):
    storage = StorageService(backend="local", upload_root=str(upload_root))
    with pytest.raises(SourceFileError):
        await storage.fetch("")


@pytest.mark.asyncio
async def test_supabase_download():
    storage = StorageService(backend="supabase")
    client = AsyncMock()
    client.get.return_value = httpx.Response(
        200, content=b"%PDF remote", request=httpx.Request("GET", "https://storage.test")
    )
    with patch("ideagraph.services.storage_service.httpx.AsyncClient") as factory:
        factory.return_value.__aenter__.return_value = client
        assert await storage.fetch("project/paper.pdf") == b"%PDF remote"

    url = client.get.await_args.args[0]
    assert url.endswith(f"/storage/v1/object/{storage.bucket}/project/paper.pdf")


@pytest.mark.asyncio
async def test_supabase_not_found():
    storage = StorageService(backend="supabase")
    client = AsyncMock()
    client.get.return_value = httpx.Response(
        404, text="not found", request=httpx.Request("GET", "https://storage.test")
    )
    with patch("ideagraph.services.storage_service.httpx.AsyncClient") as factory:
        factory.return_value.__aenter__.return_value = client
        with pytest.raises(SourceFileError, match="HTTP 404"):
            await storage.fetch("project/paper.pdf")
