"""Test doubles: fake clock/sleep, scripted operations, botocore-shaped errors."""

from __future__ import annotations


class FakeClock:
    """Monotonic clock advanced only by the recorded sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    async def asleep(self, seconds: float) -> None:
        self.sleep(seconds)


class Scripted:
    """Zero-arg operation replaying a script of values/exceptions; the last entry repeats."""

    def __init__(self, *script: object) -> None:
        self.script = list(script)
        self.calls = 0

    def __call__(self) -> object:
        self.calls += 1
        step = self.script[min(self.calls, len(self.script)) - 1]
        if isinstance(step, BaseException):
            raise step
        return step


class AsyncScripted(Scripted):
    async def __call__(self) -> object:  # type: ignore[override]
        return Scripted.__call__(self)


class FakeClientError(Exception):
    """Mimics botocore.exceptions.ClientError's response layout."""

    def __init__(self, code: str, message: str = "", status: int = 400) -> None:
        super().__init__(f"An error occurred ({code}): {message}")
        self.response = {
            "Error": {"Code": code, "Message": message},
            "ResponseMetadata": {"HTTPStatusCode": status},
        }
