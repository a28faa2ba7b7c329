"""
Маршрути внутрішнього чату персоналу (``/api/local/conversations``).

Доступ мають лише ролі ``admin``, ``superadmin`` та ``employee``. Особа
визначається локальною сесією або, у режимі ``remote``, зовнішнім бекендом.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

import config
import crud, schemas
from auth import auth_service, NOT_AUTHENTICATED, ACCESS_DENIED
from database import get_db
from models import Role
from remote_auth import fetch_remote_identity

CHAT_ROLES = {Role.admin.value, Role.superadmin.value, Role.employee.value}
CONVERSATION_NOT_FOUND = "Conversation non trouvée"

router = APIRouter(prefix="/api/local/conversations", tags=["Chat"])


async def get_chat_identity(request: Request, db: Session = Depends(get_db)) -> schemas.Identity:
    """
    Залежність FastAPI: повертає особу співробітника або кидає 401/403.

    :raises HTTPException: 401 без дійсної сесії, 403 для ролі поза списком дозволених.
    """
    if config.CHAT_AUTH_MODE == "remote":
        identity = await fetch_remote_identity(request.headers.get("cookie"))
        if identity is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=NOT_AUTHENTICATED)
    else:
        token = request.cookies.get(config.AUTH_COOKIE_NAME)
        user = await run_in_threadpool(auth_service.authenticate, db, token)
        identity = schemas.Identity(user_id=user.id, role=user.role.value)

    if identity.role not in CHAT_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=ACCESS_DENIED)
    return identity


@router.get("", response_model=List[schemas.ConversationResponse])
def list_conversations(identity: schemas.Identity = Depends(get_chat_identity), db: Session = Depends(get_db)):
    return crud.get_conversations_for_user(db, identity.user_id)

@router.post("", response_model=schemas.ConversationResponse)
def create_conversation(
    body: schemas.ConversationCreate,
    identity: schemas.Identity = Depends(get_chat_identity),
    db: Session = Depends(get_db),
):
    """
    Створює розмову між поточним користувачем і ``participantId``.
    Повторний виклик для тієї ж пари (у будь-якому порядку) повертає ту саму розмову.
    """
    if not body.participant_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="participantId requis")

    return crud.get_or_create_conversation(db, [identity.user_id, body.participant_id])

@router.get("/{conversation_id}/messages", response_model=List[schemas.ChatMessageResponse])
def list_messages(conversation_id: str, identity: schemas.Identity = Depends(get_chat_identity), db: Session = Depends(get_db)):
    conversation = crud.get_conversation_for_participant(db, conversation_id, identity.user_id)
    if conversation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CONVERSATION_NOT_FOUND)
    return crud.get_messages(db, conversation.id)

@router.post("/{conversation_id}/messages", response_model=schemas.ChatMessageResponse)
def send_message(
    conversation_id: str,
    body: schemas.MessageCreate,
    identity: schemas.Identity = Depends(get_chat_identity),
    db: Session = Depends(get_db),
):
    content = (body.content or "").strip()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Contenu requis")

    conversation = crud.get_conversation_for_participant(db, conversation_id, identity.user_id)
    if conversation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CONVERSATION_NOT_FOUND)

    return crud.create_message(db, conversation, identity.user_id, content)
