import pytest

from phonesecure.services.log_port import InMemoryLogPort

CHANNEL = "chat/test-device"
STORAGE = "https://firebasestorage.googleapis.com/v0/b/chat-sphere-eed46.appspot.com/o"


class FixedClock:
    def __init__(self, start: int = 1_718_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@pytest.fixture
def channel() -> str:
    return CHANNEL


@pytest.fixture
def log_port() -> InMemoryLogPort:
    return InMemoryLogPort()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()
