"""Push channel with automatic reconnection."""

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosedOK

from ..core.exceptions import ChannelError


logger = logging.getLogger(__name__)


# Opens a connection to a URL. The connection must support `async for` over
# incoming messages, plus awaitable `send(text)` and `close()`.
Connector = Callable[[str], Awaitable[Any]]


async def websocket_connector(url: str) -> Any:
    """Default connector backed by the websockets library."""
    return await websockets.connect(url)


class ChannelState(Enum):
    """Connection state of a ReconnectingChannel."""
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    CLOSED = "closed"


class ChannelHandle:
    """Handle returned by ReconnectingChannel.open."""

    def __init__(self, channel: 'ReconnectingChannel', stream_id: str):
        self.channel = channel
        self.stream_id = stream_id

    @property
    def state(self) -> ChannelState:
        return self.channel.state

    @property
    def is_connected(self) -> bool:
        return self.channel.is_connected

    async def send(self, payload: Any) -> bool:
        return await self.channel.send(payload)

    async def close(self) -> None:
        await self.channel.close()


class ReconnectingChannel:
    """A single logical subscription to a named stream.

    Network flapping is hidden from consumers: when the connection drops the
    channel waits `reconnect_delay_ms` and connects again, for as long as it
    is not closed. Every incoming message is decoded as JSON and handed to
    `on_message`; malformed messages are logged and dropped.
    """

    def __init__(self, url_for_stream: Callable[[str], str],
                 on_connect: Optional[Callable[[], None]] = None,
                 on_message: Optional[Callable[[Any], None]] = None,
                 on_disconnect: Optional[Callable[[], None]] = None,
                 on_error: Optional[Callable[[ChannelError], None]] = None,
                 reconnect: bool = True,
                 reconnect_delay_ms: int = 3000,
                 reconnect_backoff: float = 1.0,
                 max_reconnect_delay_ms: Optional[int] = None,
                 connector: Optional[Connector] = None):
        """Initialize channel.

        Args:
            url_for_stream: Builds the endpoint URL for a stream identifier
            on_connect: Called after each successful connection
            on_message: Called with every decoded message
            on_disconnect: Called when an established connection is lost
            on_error: Called with a ChannelError on transport failures
            reconnect: Whether to reconnect after a disconnect
            reconnect_delay_ms: Delay before a reconnect attempt
            reconnect_backoff: Multiplier applied to the delay after each failed attempt
            max_reconnect_delay_ms: Upper bound for the delay when backing off
            connector: Coroutine function opening a connection; websockets by default
        """
        self.url_for_stream = url_for_stream
        self.on_connect = on_connect
        self.on_message = on_message
        self.on_disconnect = on_disconnect
        self.on_error = on_error
        self.reconnect = reconnect
        self.reconnect_delay_ms = reconnect_delay_ms
        self.reconnect_backoff = reconnect_backoff
        self.max_reconnect_delay_ms = max_reconnect_delay_ms
        self.connector = connector or websocket_connector

        self.stream_id: Optional[str] = None
        self._state = ChannelState.IDLE
        self._connection: Any = None
        self._task: Optional[asyncio.Task] = None

        self.stats: Dict[str, int] = {
            'connection_attempts': 0,
            'connections': 0,
            'messages_received': 0,
            'messages_dropped': 0,
            'errors': 0,
        }

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ChannelState.CONNECTED

    @property
    def is_closed(self) -> bool:
        return self._state == ChannelState.CLOSED

    def open(self, stream_id: str) -> ChannelHandle:
        """Start the connection loop for a stream.

        Must be called from within a running event loop.

        Raises:
            RuntimeError: If the channel was already opened or closed
        """
        if self._state != ChannelState.IDLE:
            raise RuntimeError(f"Channel cannot be opened in state {self._state.value}")

        self.stream_id = stream_id
        self._state = ChannelState.CONNECTING
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"channel-{stream_id}"
        )
        return ChannelHandle(self, stream_id)

    async def send(self, payload: Any) -> bool:
        """Send a JSON payload.

        Outbound messages are not queued: while disconnected this does
        nothing and returns False.
        """
        if not self.is_connected or self._connection is None:
            logger.debug(f"Not connected, dropping outbound message on stream {self.stream_id}")
            return False

        try:
            await self._connection.send(json.dumps(payload))
            return True
        except Exception as e:
            self._report_error(f"send failed: {e}")
            return False

    async def close(self) -> None:
        """Stop the channel for good.

        Cancels a pending reconnect and releases the connection. Idempotent,
        and safe to call from inside one of the channel's own callbacks.
        """
        if self._state == ChannelState.CLOSED:
            return

        self._state = ChannelState.CLOSED
        task, self._task = self._task, None

        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        await self._release_connection()
        logger.debug(f"Channel for stream {self.stream_id} closed")

    async def _run(self) -> None:
        url = self.url_for_stream(self.stream_id)
        failed_attempts = 0

        try:
            while not self.is_closed:
                self._state = ChannelState.CONNECTING
                self.stats['connection_attempts'] += 1

                if await self._connect(url):
                    failed_attempts = 0
                    if self.is_closed:
                        break
                    await self._receive()
                    await self._release_connection()

                    if self.is_closed:
                        break
                    self._state = ChannelState.DISCONNECTED
                    logger.info(f"Channel for stream {self.stream_id} disconnected")
                    self._emit(self.on_disconnect)
                else:
                    failed_attempts += 1
                    if self.is_closed:
                        break
                    self._state = ChannelState.DISCONNECTED

                if not self.reconnect or self.is_closed:
                    break

                delay = self._reconnect_delay(failed_attempts)
                logger.debug(f"Reconnecting stream {self.stream_id} in {delay:.2f}s")
                await asyncio.sleep(delay)
        finally:
            await self._release_connection()

    async def _connect(self, url: str) -> bool:
        try:
            self._connection = await self.connector(url)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._report_error(f"connection to {url} failed: {e}")
            return False

        if self.is_closed:
            await self._release_connection()
            return False

        self._state = ChannelState.CONNECTED
        self.stats['connections'] += 1
        logger.info(f"Channel connected to stream {self.stream_id}")
        self._emit(self.on_connect)
        return True

    async def _receive(self) -> None:
        try:
            async for raw in self._connection:
                self._handle_raw(raw)
                if self.is_closed:
                    return
        except asyncio.CancelledError:
            raise
        except ConnectionClosedOK:
            pass
        except Exception as e:
            if self.is_closed:
                return
            self._report_error(f"connection lost: {e}")

    def _handle_raw(self, raw: Any) -> None:
        self.stats['messages_received'] += 1
        try:
            if isinstance(raw, (bytes, bytearray)):
                raw = raw.decode('utf-8')
            payload = json.loads(raw)
        except (UnicodeDecodeError, TypeError, ValueError) as e:
            self.stats['messages_dropped'] += 1
            logger.error(f"Dropping malformed message on stream {self.stream_id}: {e}")
            return

        self._emit(self.on_message, payload)

    def _reconnect_delay(self, failed_attempts: int) -> float:
        delay_ms = self.reconnect_delay_ms * (self.reconnect_backoff ** max(0, failed_attempts - 1))
        if self.max_reconnect_delay_ms is not None:
            delay_ms = min(delay_ms, self.max_reconnect_delay_ms)
        return delay_ms / 1000.0

    def _report_error(self, reason: str) -> None:
        self.stats['errors'] += 1
        error = ChannelError(reason, stream_id=self.stream_id)
        logger.warning(str(error))
        self._emit(self.on_error, error)

    def _emit(self, callback: Optional[Callable[..., None]], *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.exception(f"Channel callback failed on stream {self.stream_id}: {e}")

    async def _release_connection(self) -> None:
        connection, self._connection = self._connection, None
        if connection is None:
            return
        try:
            await connection.close()
        except Exception as e:
            logger.debug(f"Error while closing connection for stream {self.stream_id}: {e}")
