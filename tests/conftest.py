import os
import tempfile

import pytest

# Point the app at a throwaway database before anything imports scriptcoach.
_TMP_DIR = tempfile.mkdtemp(prefix="scriptcoach-tests-")
os.environ.setdefault("SCRIPTCOACH_DATA_DIR", _TMP_DIR)
os.environ.setdefault(
    "SCRIPTCOACH_DB_URL", f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
)


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now: int = 0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def clock():
    return FakeClock()
