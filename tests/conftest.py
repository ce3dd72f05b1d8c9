import asyncio

import pytest

from clipvault.engine import HistoryEngine
from clipvault.models import ClipData, ClipSource, ContentType
from clipvault.storage import StorageManager


@pytest.fixture
def storage():
    mgr = StorageManager(db_path=":memory:")
    yield mgr
    mgr.close()


@pytest.fixture
def run():
    """Run coroutines on one private event loop for the whole test."""
    loop = asyncio.new_event_loop()
    yield loop.run_until_complete
    loop.run_until_complete(loop.shutdown_default_executor())
    loop.close()


@pytest.fixture
def engine(storage, run):
    return run(HistoryEngine.open(storage))


@pytest.fixture
def make_data():
    """Factory fixture for save requests."""

    def _make_data(
        content: str | None = "hello world",
        hostname: str = "example.com",
        content_type: ContentType | None = None,
        mime_type: str | None = None,
    ) -> ClipData:
        return ClipData(
            content=content,
            type=content_type,
            source=ClipSource(hostname=hostname, url=f"https://{hostname}/"),
            mime_type=mime_type,
        )

    return _make_data
