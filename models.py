"""
Модуль моделей бази даних SQLAlchemy.

Визначає таблиці користувачів, сесій, заявок на кошторис, рахунків, бронювань,
сповіщень і внутрішнього чату персоналу, а також перерахування ролей і провайдерів.
"""
from sqlalchemy import Column, String, Text, DateTime, Boolean, ForeignKey, Enum, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from database import Base
import enum
import uuid


def generate_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    # Naive UTC: SQLite не зберігає часові пояси.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Role(enum.Enum):
    """
    Перерахування ролей користувачів у системі.

    Використовується для контролю доступу (RBAC).
    """
    client = "client"
    employee = "employee"
    admin = "admin"
    superadmin = "superadmin"


class AuthProvider(enum.Enum):
    """Спосіб, яким користувач входить у систему."""
    email = "email"
    apple = "apple"
    google = "google"
    facebook = "facebook"


class User(Base):
    """
    SQLAlchemy модель для таблиці 'users'.

    Пароль відсутній для облікових записів, створених через OAuth.
    ``provider_id`` не є унікальним на рівні БД.
    """
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=True)
    name = Column(String, nullable=True)
    profile_image = Column(String, nullable=True)
    auth_provider = Column(Enum(AuthProvider), default=AuthProvider.email, nullable=False)
    provider_id = Column(String, index=True, nullable=True)
    role = Column(Enum(Role), default=Role.client, nullable=False)
    created_at = Column(DateTime, default=utcnow)


class Session(Base):
    """
    SQLAlchemy модель для таблиці 'sessions'.

    Непрозорий токен доступу, прив'язаний до користувача. Прострочені записи
    не видаляються, а лише ігноруються під час перевірки.
    """
    __tablename__ = "sessions"
    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    token = Column(String(64), unique=True, index=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", backref="sessions")


class Quote(Base):
    """SQLAlchemy модель для таблиці 'quotes' (заявки на кошторис)."""
    __tablename__ = "quotes"
    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    vehicle_brand = Column(String, nullable=True)
    vehicle_model = Column(String, nullable=True)
    vehicle_year = Column(String, nullable=True)
    wheel_size = Column(String, nullable=True)
    service_type = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, default="pending", nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", backref="quotes")


class Invoice(Base):
    """SQLAlchemy модель для таблиці 'invoices'."""
    __tablename__ = "invoices"
    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    quote_id = Column(String(36), ForeignKey('quotes.id'), nullable=True)
    invoice_number = Column(String, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String, default="pending", nullable=False)
    due_date = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)


class Reservation(Base):
    """SQLAlchemy модель для таблиці 'reservations'."""
    __tablename__ = "reservations"
    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    service_type = Column(String, nullable=False)
    date = Column(DateTime, nullable=False)
    time = Column(String, nullable=False)
    status = Column(String, default="pending", nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)


class Notification(Base):
    """SQLAlchemy модель для таблиці 'notifications'."""
    __tablename__ = "notifications"
    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String, default="info", nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)


class Conversation(Base):
    """
    SQLAlchemy модель для таблиці 'conversations'.

    ``participant_key`` містить відсортовані ID учасників через кому, тому
    повторне створення розмови для тієї ж пари повертає наявний запис.
    Ідентифікатори учасників не є зовнішніми ключами: у режимі віддаленої
    автентифікації це користувачі зовнішнього бекенду.
    """
    __tablename__ = "conversations"
    id = Column(String(36), primary_key=True, default=generate_id)
    participant_key = Column(String, unique=True, index=True, nullable=False)
    last_message = Column(String(100), nullable=True)
    last_message_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    participants = relationship("ConversationParticipant", back_populates="conversation", cascade="all, delete-orphan")

    @property
    def participant_ids(self):
        return self.participant_key.split(",")


class ConversationParticipant(Base):
    """Учасник розмови; по одному рядку на кожен унікальний ID."""
    __tablename__ = "conversation_participants"
    conversation_id = Column(String(36), ForeignKey('conversations.id'), primary_key=True)
    user_id = Column(String, primary_key=True, index=True)

    conversation = relationship("Conversation", back_populates="participants")


class Message(Base):
    """SQLAlchemy модель для таблиці 'messages'."""
    __tablename__ = "messages"
    id = Column(String(36), primary_key=True, default=generate_id)
    conversation_id = Column(String(36), ForeignKey('conversations.id'), nullable=False, index=True)
    sender_id = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow)
