import asyncio
import threading
import time
import sys
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


async def run(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    text: str = "Running",
    interval: float = 0.1,
    **kwargs: Any,
) -> T:
    """
    Запускает асинхронную функцию func и крутит спиннер в ОТДЕЛЬНОМ потоке,
    пока функция не завершится. Пишет в stderr, чтобы не мешать --json-output.
    """
    spinner_chars = "|/-\\"
    stop_event = threading.Event()
    stream = sys.stderr

    def spinner():
        i = 0
        while not stop_event.is_set():
            frame = spinner_chars[i % len(spinner_chars)]
            stream.write(f"\r{text} {frame}")
            stream.flush()
            i += 1
            time.sleep(interval)

    thread = threading.Thread(target=spinner, daemon=True)
    thread.start()

    success = False

    try:
        result = await func(*args, **kwargs)
        success = True
        return result
    finally:
        stop_event.set()
        await asyncio.to_thread(thread.join)

        stream.write("\r" + " " * (len(text) + 2) + "\r")
        if success:
            stream.write(f"{text} - ✅ ok\n")
        else:
            stream.write(f"{text} - ❌ failed\n")
        stream.flush()
