"""Real-time API - the /ws notification channel."""

from fastapi import APIRouter, Request, WebSocket

from services.realtime import PushDispatcher, serve_connection

router = APIRouter()


def get_dispatcher(request: Request) -> PushDispatcher:
    return request.app.state.dispatcher


@router.websocket("/ws")
async def notification_socket(websocket: WebSocket):
    """Push notifications to an authenticated client."""
    await serve_connection(websocket, websocket.app.state.registry)
