"""
Модуль схем Pydantic.

Забезпечує валідацію вхідних даних та форматування відповідей API.
Назви полів у JSON — camelCase, як очікує мобільний клієнт.
"""
from pydantic import BaseModel, EmailStr, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional
from models import Role, AuthProvider
from datetime import datetime
from decimal import Decimal


class CamelModel(BaseModel):
    """Базова схема: поля приймаються і віддаються у camelCase."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class UserRegister(CamelModel):
    """
    Схема для реєстрації за email та паролем.
    Поля необов'язкові на рівні схеми: відсутність перевіряє обробник,
    щоб повернути зрозуміле повідомлення.
    """
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, max_length=255)
    name: Optional[str] = Field(None, max_length=100)


class UserLogin(CamelModel):
    """Схема для входу за email та паролем."""
    email: Optional[EmailStr] = None
    password: Optional[str] = None


class OAuthLogin(CamelModel):
    """
    Дані, які клієнт отримав від провайдера після нативного входу
    (Apple, а також зарезервовані Google і Facebook).
    """
    provider: Optional[AuthProvider] = None
    provider_id: Optional[str] = None
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    profile_image: Optional[str] = None


class UserResponse(CamelModel):
    """
    Публічна проєкція користувача.
    Не містить хешу пароля, ID провайдера чи інших внутрішніх полів.
    """
    id: str
    email: str
    name: Optional[str] = None
    profile_image: Optional[str] = None
    role: Role


class UserRoleUpdate(BaseModel):
    """Схема для зміни ролі користувача адміністратором."""
    role: Role


class MessageResponse(BaseModel):
    """Уніфікована відповідь з текстовим повідомленням."""
    message: str


class Identity(BaseModel):
    """
    Автентифікована особа для маршрутів чату: достатньо ID та ролі,
    бо у віддаленому режимі локального запису користувача може не бути.
    """
    user_id: str
    role: str


class QuoteCreate(CamelModel):
    """Заявка на кошторис. Власник визначається лише з сесії."""
    vehicle_brand: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_year: Optional[str] = None
    wheel_size: Optional[str] = None
    service_type: str = Field(min_length=1)
    description: Optional[str] = None


class QuoteResponse(CamelModel):
    id: str
    user_id: str
    vehicle_brand: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_year: Optional[str] = None
    wheel_size: Optional[str] = None
    service_type: str
    description: Optional[str] = None
    status: str
    total_amount: Optional[Decimal] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class InvoiceResponse(CamelModel):
    id: str
    user_id: str
    quote_id: Optional[str] = None
    invoice_number: str
    amount: Decimal
    status: str
    due_date: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    created_at: datetime


class ReservationCreate(CamelModel):
    """Бронювання. ``time`` — рядок у форматі клієнта, напр. "14:30"."""
    service_type: str = Field(min_length=1)
    date: datetime
    time: str = Field(min_length=1)
    notes: Optional[str] = None


class ReservationResponse(CamelModel):
    id: str
    user_id: str
    service_type: str
    date: datetime
    time: str
    status: str
    notes: Optional[str] = None
    created_at: datetime


class NotificationResponse(CamelModel):
    id: str
    user_id: str
    title: str
    message: str
    type: str
    read: bool
    created_at: datetime


class ServiceResponse(BaseModel):
    id: str
    name: str
    description: str
    price: int


class ConversationCreate(CamelModel):
    participant_id: Optional[str] = None


class ConversationResponse(CamelModel):
    id: str
    participant_ids: List[str]
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class MessageCreate(CamelModel):
    content: Optional[str] = None


class ChatMessageResponse(CamelModel):
    id: str
    conversation_id: str
    sender_id: str
    content: str
    created_at: datetime
