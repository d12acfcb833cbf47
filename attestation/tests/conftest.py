import pytest


@pytest.fixture
def anyio_backend():
    # The pipeline joins its loads with asyncio.gather, so it only runs on asyncio.
    return "asyncio"
