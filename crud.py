"""
Модуль для виконання CRUD операцій (Create, Read, Update, Delete) з базою даних.
Містить функції для користувачів (User), сесій (Session), заявок, рахунків,
бронювань, сповіщень і чату.
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from datetime import datetime
from typing import List, Optional, Sequence

import models, schemas


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    """
    Знаходить користувача в базі даних за його електронною поштою.

    :param db: Поточна сесія бази даних SQLAlchemy.
    :param email: Електронна пошта користувача для пошуку.
    :return: Об'єкт користувача :class:`models.User` або None, якщо не знайдено.
    """
    return db.query(models.User).filter(models.User.email == email).first()

def get_user_by_id(db: Session, user_id: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()

def get_user_by_provider_id(db: Session, provider_id: str) -> Optional[models.User]:
    """
    Знаходить користувача за ID облікового запису у зовнішнього провайдера.

    :param db: Поточна сесія бази даних SQLAlchemy.
    :param provider_id: Ідентифікатор від Apple/Google/Facebook.
    :return: Перший знайдений :class:`models.User` або None.
    """
    return db.query(models.User).filter(models.User.provider_id == provider_id).first()

def create_user(db: Session, email: str, hashed_password: Optional[str] = None, name: Optional[str] = None,
                auth_provider: models.AuthProvider = models.AuthProvider.email,
                provider_id: Optional[str] = None, profile_image: Optional[str] = None) -> models.User:
    """
    Створює нового користувача. Пароль має бути вже захешований.
    Якщо ім'я не передано, використовується частина email до "@".

    :param db: Поточна сесія бази даних SQLAlchemy.
    :param email: Електронна пошта.
    :param hashed_password: Хеш пароля або None для облікових записів OAuth.
    :return: Створений об'єкт користувача :class:`models.User`.
    """
    db_user = models.User(
        email=email,
        password=hashed_password,
        name=name or email.split("@")[0],
        auth_provider=auth_provider,
        provider_id=provider_id,
        profile_image=profile_image,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user

def link_provider(db: Session, user: models.User, provider: models.AuthProvider, provider_id: str,
                  profile_image: Optional[str]) -> models.User:
    """
    Прив'язує OAuth-провайдера до наявного облікового запису з тим самим email.

    :param db: Поточна сесія бази даних SQLAlchemy.
    :param user: Наявний користувач.
    :param provider: Провайдер, через який виконано вхід.
    :param provider_id: Ідентифікатор у провайдера.
    :param profile_image: Нове зображення профілю (перезаписує попереднє, навіть якщо None).
    :return: Оновлений об'єкт користувача :class:`models.User`.
    """
    user.auth_provider = provider
    user.provider_id = provider_id
    user.profile_image = profile_image
    db.commit()
    db.refresh(user)
    return user

def update_profile_image(db: Session, user: models.User, image_url: str) -> models.User:
    """
    Оновлює посилання на зображення профілю користувача.

    :param db: Поточна сесія бази даних SQLAlchemy.
    :param user: Об'єкт користувача, чиє зображення оновлюється.
    :param image_url: Пряме посилання на зображення (наприклад, з Cloudinary).
    :return: Оновлений об'єкт користувача :class:`models.User`.
    """
    user.profile_image = image_url
    db.commit()
    db.refresh(user)
    return user

def update_user_role(db: Session, user: models.User, role: models.Role) -> models.User:
    user.role = role
    db.commit()
    db.refresh(user)
    return user


def create_session(db: Session, user_id: str, token: str, expires_at: datetime) -> models.Session:
    """
    Зберігає новий токен сесії.

    :param db: Поточна сесія бази даних SQLAlchemy.
    :param user_id: Власник сесії.
    :param token: Згенерований непрозорий токен.
    :param expires_at: Момент, після якого токен вважається недійсним.
    :return: Створений запис :class:`models.Session`.
    """
    db_session = models.Session(user_id=user_id, token=token, expires_at=expires_at)
    db.add(db_session)
    db.commit()
    db.refresh(db_session)
    return db_session

def get_session_by_token(db: Session, token: str) -> Optional[models.Session]:
    return db.query(models.Session).filter(models.Session.token == token).first()

def delete_session(db: Session, token: str) -> int:
    """
    Видаляє сесію за токеном.

    :return: Кількість видалених записів (0, якщо токен невідомий).
    """
    deleted = db.query(models.Session).filter(models.Session.token == token).delete(synchronize_session=False)
    db.commit()
    return deleted


def create_quote(db: Session, quote: schemas.QuoteCreate, user_id: str) -> models.Quote:
    """
    Створює заявку на кошторис для конкретного користувача.

    :param db: Поточна сесія бази даних SQLAlchemy.
    :param quote: Схема з даними заявки.
    :param user_id: Ідентифікатор власника, взятий із сесії.
    :return: Створений об'єкт :class:`models.Quote`.
    """
    db_quote = models.Quote(**quote.model_dump(), user_id=user_id)
    db.add(db_quote)
    db.commit()
    db.refresh(db_quote)
    return db_quote

def get_quotes(db: Session, user_id: str) -> List[models.Quote]:
    return (
        db.query(models.Quote)
        .filter(models.Quote.user_id == user_id)
        .order_by(models.Quote.created_at.desc())
        .all()
    )

def get_quote(db: Session, quote_id: str, user_id: str) -> Optional[models.Quote]:
    return db.query(models.Quote).filter(models.Quote.id == quote_id, models.Quote.user_id == user_id).first()

def get_invoices(db: Session, user_id: str) -> List[models.Invoice]:
    return (
        db.query(models.Invoice)
        .filter(models.Invoice.user_id == user_id)
        .order_by(models.Invoice.created_at.desc())
        .all()
    )

def get_invoice(db: Session, invoice_id: str, user_id: str) -> Optional[models.Invoice]:
    return db.query(models.Invoice).filter(models.Invoice.id == invoice_id, models.Invoice.user_id == user_id).first()

def create_reservation(db: Session, reservation: schemas.ReservationCreate, user_id: str) -> models.Reservation:
    db_reservation = models.Reservation(**reservation.model_dump(), user_id=user_id)
    db.add(db_reservation)
    db.commit()
    db.refresh(db_reservation)
    return db_reservation

def get_reservations(db: Session, user_id: str) -> List[models.Reservation]:
    return (
        db.query(models.Reservation)
        .filter(models.Reservation.user_id == user_id)
        .order_by(models.Reservation.created_at.desc())
        .all()
    )

def get_reservation(db: Session, reservation_id: str, user_id: str) -> Optional[models.Reservation]:
    return (
        db.query(models.Reservation)
        .filter(models.Reservation.id == reservation_id, models.Reservation.user_id == user_id)
        .first()
    )

def get_notifications(db: Session, user_id: str) -> List[models.Notification]:
    return (
        db.query(models.Notification)
        .filter(models.Notification.user_id == user_id)
        .order_by(models.Notification.created_at.desc())
        .all()
    )

def mark_notification_read(db: Session, notification_id: str, user_id: str) -> Optional[models.Notification]:
    """
    Позначає сповіщення як прочитане, якщо воно належить користувачу.

    :param db: Поточна сесія бази даних SQLAlchemy.
    :param notification_id: Ідентифікатор сповіщення.
    :param user_id: Ідентифікатор власника.
    :return: Оновлений :class:`models.Notification` або None.
    """
    notification = (
        db.query(models.Notification)
        .filter(models.Notification.id == notification_id, models.Notification.user_id == user_id)
        .first()
    )
    if notification is None:
        return None
    notification.read = True
    db.commit()
    db.refresh(notification)
    return notification


def participant_key(participant_ids: Sequence[str]) -> str:
    return ",".join(sorted(participant_ids))

def get_conversations_for_user(db: Session, user_id: str) -> List[models.Conversation]:
    """
    Повертає розмови, у яких бере участь користувач: спочатку з найсвіжішим
    повідомленням, розмови без повідомлень — наприкінці.
    """
    return (
        db.query(models.Conversation)
        .join(models.ConversationParticipant)
        .filter(models.ConversationParticipant.user_id == user_id)
        .order_by(models.Conversation.last_message_at.desc().nulls_last(), models.Conversation.created_at.desc())
        .all()
    )

def get_conversation_by_participants(db: Session, participant_ids: Sequence[str]) -> Optional[models.Conversation]:
    key = participant_key(participant_ids)
    return db.query(models.Conversation).filter(models.Conversation.participant_key == key).first()

def get_or_create_conversation(db: Session, participant_ids: Sequence[str]) -> models.Conversation:
    """
    Повертає розмову для заданого набору учасників, створюючи її лише за відсутності.
    Порядок ID не має значення.

    :param db: Поточна сесія бази даних SQLAlchemy.
    :param participant_ids: ID учасників.
    :return: Наявна або щойно створена :class:`models.Conversation`.
    """
    existing = get_conversation_by_participants(db, participant_ids)
    if existing:
        return existing

    conversation = models.Conversation(participant_key=participant_key(participant_ids))
    for user_id in sorted(set(participant_ids)):
        conversation.participants.append(models.ConversationParticipant(user_id=user_id))
    db.add(conversation)
    try:
        db.commit()
    except IntegrityError:
        # Паралельний запит уже створив розмову для цієї пари.
        db.rollback()
        return get_conversation_by_participants(db, participant_ids)
    db.refresh(conversation)
    return conversation

def get_conversation_for_participant(db: Session, conversation_id: str, user_id: str) -> Optional[models.Conversation]:
    return (
        db.query(models.Conversation)
        .join(models.ConversationParticipant)
        .filter(models.Conversation.id == conversation_id, models.ConversationParticipant.user_id == user_id)
        .first()
    )

def get_messages(db: Session, conversation_id: str) -> List[models.Message]:
    return (
        db.query(models.Message)
        .filter(models.Message.conversation_id == conversation_id)
        .order_by(models.Message.created_at.asc())
        .all()
    )

def create_message(db: Session, conversation: models.Conversation, sender_id: str, content: str) -> models.Message:
    """
    Додає повідомлення і оновлює прев'ю розмови в одній транзакції.

    :param db: Поточна сесія бази даних SQLAlchemy.
    :param conversation: Розмова, до якої додається повідомлення.
    :param sender_id: ID відправника.
    :param content: Вже обрізаний від пробілів текст.
    :return: Створений :class:`models.Message`.
    """
    now = models.utcnow()
    message = models.Message(conversation_id=conversation.id, sender_id=sender_id, content=content, created_at=now)
    db.add(message)
    conversation.last_message = content[:100]
    conversation.last_message_at = now
    conversation.updated_at = now
    db.commit()
    db.refresh(message)
    return message
