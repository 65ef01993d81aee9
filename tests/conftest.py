import pytest

from stormbot.ai.engine import DecisionEngine


@pytest.fixture(scope="session", autouse=True)
def compiled_kernels():
    """Compile the numba kernels once so timed tests measure search, not JIT."""
    DecisionEngine().warmup()
