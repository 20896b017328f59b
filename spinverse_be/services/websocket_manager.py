"""
WebSocket relay for real-time balance and win events.

Clients connect over Socket.IO, optionally authenticate with their access
token (joining the private room user_<id>) and exchange:

  balance_update {userId, balance}  -> balance_changed {balance} to the user's other sockets
  win {username, amount, game}      -> win_notification to everyone
  jackpot {username, amount, game}  -> jackpot_notification to everyone
  win {amount, betAmount, symbols}  -> win relayed to the other sockets (legacy slot feed)
  spin_start {bet}                  -> spin_start relayed to the other sockets
"""

from flask_socketio import emit, join_room
from flask import request
from datetime import datetime, timezone
import logging

from spinverse_be.utils.auth import user_id_from_token

logger = logging.getLogger(__name__)


def user_room(user_id):
    return f'user_{user_id}'


class SocketEventRelay:
    def __init__(self, app=None, socketio=None):
        self.socketio = socketio
        self.connected_users = {}  # socket_id -> {user_id, connected_at}

        if app and socketio:
            self.init_app(app)

    def init_app(self, app, socketio=None):
        """Register Socket.IO handlers"""
        if socketio is not None:
            self.socketio = socketio
        self.connected_users = {}

        self.socketio.on_event('connect', self.handle_connect)
        self.socketio.on_event('disconnect', self.handle_disconnect)
        self.socketio.on_event('authenticate', self.handle_authenticate)
        self.socketio.on_event('balance_update', self.handle_balance_update)
        self.socketio.on_event('win', self.handle_win)
        self.socketio.on_event('jackpot', self.handle_jackpot)
        self.socketio.on_event('spin_start', self.handle_spin_start)

    def handle_connect(self, auth=None):
        """Greet every client; the win feed is public."""
        self.connected_users[request.sid] = {
            'user_id': None,
            'connected_at': datetime.now(timezone.utc)
        }
        logger.info(f"Socket connected (socket: {request.sid})")
        emit('connection', {'message': 'Connected to SpinVerse real-time server'})

        token = auth.get('token') if isinstance(auth, dict) else None
        if token:
            self.handle_authenticate({'token': token})

    def handle_disconnect(self, *args):
        data = self.connected_users.pop(request.sid, None)
        if data and data['user_id']:
            logger.info(f"User {data['user_id']} disconnected (socket: {request.sid})")

    def handle_authenticate(self, data):
        token = (data or {}).get('token') if isinstance(data, dict) else None
        if token and token.startswith('Bearer '):
            token = token[7:]

        user_id = user_id_from_token(token) if token else None
        if not user_id:
            logger.warning(f"Socket authentication failed (socket: {request.sid})")
            emit('authenticated', {'success': False, 'message': 'Invalid or expired token'})
            return

        join_room(user_room(user_id))
        self.connected_users.setdefault(request.sid, {'connected_at': datetime.now(timezone.utc)})['user_id'] = user_id
        logger.info(f"User {user_id} authenticated on socket {request.sid}")
        emit('authenticated', {'success': True})

    def get_socket_user(self):
        data = self.connected_users.get(request.sid)
        return data['user_id'] if data else None

    def handle_balance_update(self, data):
        """Fan a balance change out to the user's other open sockets."""
        if not isinstance(data, dict) or 'balance' not in data:
            emit('error', {'message': 'balance is required'})
            return

        user_id = self.get_socket_user()
        if not user_id:
            emit('error', {'message': 'Authentication required'})
            return

        claimed = data.get('userId')
        if claimed is not None and str(claimed) != str(user_id):
            logger.warning(f"Socket {request.sid} (user {user_id}) tried to update balance of user {claimed}")
            emit('error', {'message': 'Cannot update another user\'s balance'})
            return

        emit('balance_changed', {'balance': data['balance']}, to=user_room(user_id), include_self=False)

    def handle_win(self, data):
        if not isinstance(data, dict):
            return

        if 'username' in data:
            payload = {'username': data['username'], 'amount': data.get('amount'), 'game': data.get('game')}
            logger.info(f"Win broadcast: {payload}")
            emit('win_notification', payload, broadcast=True)
        else:
            emit('win', data, broadcast=True, include_self=False)

    def handle_jackpot(self, data):
        if not isinstance(data, dict):
            return
        payload = {'username': data.get('username'), 'amount': data.get('amount'), 'game': data.get('game')}
        logger.info(f"Jackpot broadcast: {payload}")
        emit('jackpot_notification', payload, broadcast=True)

    def handle_spin_start(self, data):
        emit('spin_start', data if isinstance(data, dict) else {}, broadcast=True, include_self=False)

    # Server-originated events
    def notify_balance_changed(self, user_id, balance):
        """Push a server-side balance change to every socket of `user_id`."""
        if not self.socketio:
            return
        self.socketio.emit('balance_changed', {'balance': float(balance)}, to=user_room(user_id))
        logger.debug(f"Pushed balance_changed to user {user_id}")

    def get_connected_users_count(self):
        return len({d['user_id'] for d in self.connected_users.values() if d.get('user_id')})

    def get_connected_sockets_count(self):
        return len(self.connected_users)

# Global instance
websocket_manager = SocketEventRelay()
