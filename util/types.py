from typing import Any, Awaitable, Callable, Mapping


# Flow: Narrow types shared by the job client and the pipeline.
JobParameters = Mapping[str, Any]

SleepFn = Callable[[float], Awaitable[None]]
ClockFn = Callable[[], float]
