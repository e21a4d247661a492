import asyncio
import time
from typing import Awaitable, Callable, Optional


async def port_accepts_connections(
    host: str,
    port: int,
    timeout: float = 1.0,
    hold: float = 0.2,
) -> bool:
    """
    Порт считается готовым, если соединение установилось и не было сразу
    закрыто с той стороны. docker-proxy принимает соединение на
    опубликованном порту ещё до старта сервиса и тут же его закрывает.
    """
    try:
        reader, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    except (OSError, asyncio.TimeoutError):
        return False
    try:
        data = await asyncio.wait_for(reader.read(1), hold)
        # Сервис, который говорит первым, тоже готов; EOF означает отказ
        ready = bool(data)
    except asyncio.TimeoutError:
        ready = True
    except OSError:
        ready = False
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
    return ready


async def wait_for_port(
    host: str,
    port: int,
    timeout: float,
    interval: float = 1.0,
    alive: Optional[Callable[[], Awaitable[bool]]] = None,
) -> int:
    """
    Барьер готовности: опрашивает host:port, пока порт не начнёт принимать
    и удерживать TCP-соединения, но не дольше timeout секунд.

    alive: опциональная проверка, что процесс сервиса вообще ещё жив;
    если она вернула False, ждать дальше бессмысленно.

    Возвращает число попыток (>0) при успехе, 0 при таймауте или падении сервиса.
    """
    deadline = time.monotonic() + timeout
    attempts = 0
    while True:
        attempts += 1
        remaining = deadline - time.monotonic()
        if await port_accepts_connections(host, port, timeout=max(min(interval, remaining), 0.05)):
            return attempts
        if alive is not None and not await alive():
            return 0
        if time.monotonic() + interval > deadline:
            return 0
        await asyncio.sleep(interval)
