"""Socket.io server mounted next to the HTTP API."""

import socketio

from propertyxchange.config import Settings, get_settings
from propertyxchange.realtime.chat_handler import ChatRelay


def _client_manager(settings: Settings) -> socketio.AsyncManager | None:
    """Redis pub/sub fan-out when several API processes serve sockets."""

    if settings.socketio_use_redis and not settings.taskiq_testing:
        return socketio.AsyncRedisManager(settings.redis_url)
    return None


def create_socket_server(settings: Settings | None = None) -> socketio.AsyncServer:
    settings = settings or get_settings()
    server = socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=list(settings.cors_allowed_origins),
        client_manager=_client_manager(settings),
    )
    ChatRelay(server).register()
    return server


sio = create_socket_server()
