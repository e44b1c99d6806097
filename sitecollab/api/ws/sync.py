import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from sitecollab.core.exceptions import HandshakeRejected
from sitecollab.core.security import extract_token_from_header
from sitecollab.domains.collaboration.connections import CollabConnection
from sitecollab.domains.collaboration.gatekeeper import Handshake

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/collaboration/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    project_id: Optional[str] = Query(None, alias="projectId"),
    token: Optional[str] = Query(None),
    link_token: Optional[str] = Query(None, alias="linkToken"),
):
    """WebSocket эндпоинт совместного редактирования проекта"""
    state = websocket.app.state
    handshake = Handshake(
        token=token or extract_token_from_header(websocket.headers.get("authorization")),
        project_id=project_id,
        link_token=link_token,
    )

    try:
        context = await state.gatekeeper.admit(handshake)
    except HandshakeRejected as e:
        # Код закрытия и причина доходят до клиента только после accept
        await websocket.accept()
        await websocket.close(code=e.close_code, reason=e.reason)
        return

    await websocket.accept()
    handshake.establish()
    connection = CollabConnection(websocket, context)
    logger.info(
        "Client connected",
        extra={"project_id": context.project_id, "user_id": context.user_id, "connection_id": connection.id},
    )

    relay = state.collaboration
    try:
        while True:
            # Получаем сообщение от клиента
            message = await websocket.receive_text()
            await relay.dispatch(connection, message)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WebSocket error", extra={"project_id": context.project_id, "connection_id": connection.id})
    finally:
        await relay.disconnect(connection)
