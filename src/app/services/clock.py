import time
from collections.abc import Callable
from uuid import uuid4

Clock = Callable[[], int]
IdFactory = Callable[[str], str]


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:12]}"
