"""
Real-time channel to the SpinVerse Socket.IO server.

All client code talks to one `RealtimeChannel`; the raw socket, its
reconnection policy and the authentication handshake stay in here.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import socketio

logger = logging.getLogger(__name__)

RECONNECT_ATTEMPTS = 5
RECONNECT_DELAY_SECONDS = 3
SOCKETIO_PATH = 'socket.io'

Listener = Callable[[Any], None]


class RealtimeChannel:
    def __init__(self, url: str, token: Optional[str] = None, client: Optional[socketio.Client] = None):
        self.url = url
        self.token = token
        self.is_authenticated = False
        self._listeners: Dict[str, List[Listener]] = {}
        # Events the channel handles itself; listeners still receive them via _dispatch
        self._bound_events = {'connect', 'disconnect', 'authenticated', 'error'}
        self._lock = threading.Lock()
        self._client = client or socketio.Client(
            reconnection=True,
            reconnection_attempts=RECONNECT_ATTEMPTS,
            reconnection_delay=RECONNECT_DELAY_SECONDS,
            reconnection_delay_max=RECONNECT_DELAY_SECONDS,
            randomization_factor=0,
        )
        self._client.on('connect', handler=self._on_connect)
        self._client.on('disconnect', handler=self._on_disconnect)
        self._client.on('authenticated', handler=self._on_authenticated)
        self._client.on('error', handler=self._on_error)

    @property
    def is_connected(self) -> bool:
        return bool(self._client.connected)

    def connect(self) -> bool:
        if self.is_connected:
            return True
        try:
            self._client.connect(self.url, socketio_path=SOCKETIO_PATH, transports=['websocket', 'polling'])
        except socketio.exceptions.ConnectionError as e:
            logger.error("Socket.IO connection error: %s", e)
            return False
        return True

    def disconnect(self) -> None:
        with self._lock:
            self._listeners.clear()
        self.is_authenticated = False
        if self.is_connected:
            self._client.disconnect()

    def authenticate(self, token: Optional[str] = None) -> None:
        if token is not None:
            self.token = token
        if self.token and self.is_connected:
            self._client.emit('authenticate', {'token': self.token})

    def emit(self, event: str, data: Any = None) -> None:
        if not self.is_connected:
            logger.debug("Dropping '%s' while disconnected", event)
            return
        self._client.emit(event, data)

    def send(self, message: Dict[str, Any]) -> None:
        """Emit a `{type: ..., **fields}` message as the `type` event carrying the other fields."""
        if not isinstance(message, dict) or 'type' not in message:
            logger.warning("Ignoring message without a type: %r", message)
            return
        payload = {k: v for k, v in message.items() if k != 'type'}
        self.emit(message['type'], payload)

    def on(self, event: str, listener: Listener) -> None:
        with self._lock:
            self._listeners.setdefault(event, []).append(listener)
            if event in self._bound_events:
                return
            self._bound_events.add(event)
        self._client.on(event, handler=lambda *args: self._dispatch(event, *args))

    def off(self, event: str, listener: Optional[Listener] = None) -> None:
        with self._lock:
            if listener is None:
                self._listeners.pop(event, None)
                return
            listeners = self._listeners.get(event, [])
            if listener in listeners:
                listeners.remove(listener)

    def _dispatch(self, event: str, *args) -> None:
        data = args[0] if args else None
        with self._lock:
            listeners = list(self._listeners.get(event, []))
        for listener in listeners:
            try:
                listener(data)
            except Exception:
                logger.exception("Listener for '%s' failed", event)

    def _on_connect(self):
        logger.info("Socket.IO connected")
        if self.token:
            self.authenticate()
        self._dispatch('connect')

    def _on_disconnect(self, *args):
        logger.info("Socket.IO disconnected")
        self.is_authenticated = False
        self._dispatch('disconnect')

    def _on_authenticated(self, data):
        self.is_authenticated = bool((data or {}).get('success'))
        if not self.is_authenticated:
            logger.warning("Socket authentication failed: %s", (data or {}).get('message'))
        self._dispatch('authenticated', data)

    def _on_error(self, data):
        logger.warning("Socket.IO server error: %s", data)
        self._dispatch('error', data)
