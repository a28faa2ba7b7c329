import logging
from fastapi import FastAPI, Depends, HTTPException, status, UploadFile, File, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List, Optional
from redis.asyncio import Redis
from redis.exceptions import RedisError
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
import httpx

import config
from database import engine, get_db
from models import Base, Role, AuthProvider
import crud, models, schemas
from auth import auth_service, role_required
from chat import router as chat_router
from cloudinary_service import upload_profile_image

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Email ou mot de passe incorrect"
SERVER_ERROR = "Erreur serveur"

SERVICES = [
    {"id": "1", "name": "Réparation de jantes", "description": "Réparation de jantes endommagées", "price": 150},
    {"id": "2", "name": "Changement de pneus", "description": "Remplacement de pneus usés", "price": 80},
    {"id": "3", "name": "Équilibrage", "description": "Équilibrage des roues", "price": 40},
    {"id": "4", "name": "Personnalisation", "description": "Peinture et personnalisation de jantes", "price": 200},
    {"id": "5", "name": "Géométrie", "description": "Réglage de la géométrie", "price": 90},
]

app = FastAPI(
    title="Wheel Service API",
    description="API мобільного застосунку сервісу шиномонтажу: автентифікація, сесії, заявки, рахунки, бронювання та чат персоналу.",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router)

login_limiter = RateLimiter(times=config.RATE_LIMIT_TIMES, seconds=config.RATE_LIMIT_SECONDS)

async def rate_limit(request: Request, response: Response):
    """Обмеження частоти спроб входу; пропускається, якщо Redis не підключено."""
    if not config.RATE_LIMIT_ENABLED or FastAPILimiter.redis is None:
        return
    await login_limiter(request, response)

auth_limits = [Depends(rate_limit)]


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    error = exc.errors()[0]
    fields = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    field = fields[-1] if fields else "body"
    if error.get("type") == "missing":
        message = f"Champ requis : {field}"
    else:
        message = f"Champ invalide : {field}"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": message})

@app.exception_handler(SQLAlchemyError)
@app.exception_handler(httpx.HTTPError)
@app.exception_handler(RedisError)
async def infrastructure_exception_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} failed: {exc!r}", exc_info=exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"message": SERVER_ERROR})


@app.on_event("startup")
async def startup():
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        logger.error(f"Failed to create database tables: {e}")
        raise

    if not config.RATE_LIMIT_ENABLED:
        return
    try:
        r = Redis(host=config.REDIS_HOST, port=config.REDIS_PORT, db=0)
        await r.ping()
        await FastAPILimiter.init(r)
    except RedisError as e:
        FastAPILimiter.redis = None
        logger.warning(f"Failed to connect to Redis: {e}")

@app.get("/", tags=["Root"])
def root():
    return {"message": "Wheel Service API"}


@app.post("/api/auth/register", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED,
          tags=["Auth"], dependencies=auth_limits)
def register(body: schemas.UserRegister, response: Response, db: Session = Depends(get_db)):
    """
    Реєстрація нового користувача за email та паролем.

    Після успішної реєстрації одразу видається сесія і встановлюється cookie ``auth_token``.

    :param body: Email, пароль і необов'язкове ім'я.
    :param response: Відповідь, у яку записується cookie.
    :param db: Сесія бази даних SQLAlchemy.
    :return: Публічна проєкція створеного користувача.
    :raises HTTPException: 400, якщо дані неповні або email вже зареєстрований.
    """
    if not body.email or not body.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email et mot de passe requis")

    if crud.get_user_by_email(db, body.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cet email est déjà utilisé")

    user = crud.create_user(db, body.email, auth_service.get_password_hash(body.password), body.name)
    token = auth_service.create_session(db, user.id)
    auth_service.set_auth_cookie(response, token)
    logger.info(f"Registered user {user.id}")
    return user

@app.post("/api/auth/login", response_model=schemas.UserResponse, tags=["Auth"], dependencies=auth_limits)
def login(body: schemas.UserLogin, response: Response, db: Session = Depends(get_db)):
    """
    Вхід за email та паролем.

    Невідомий email, обліковий запис без пароля (лише OAuth) і неправильний
    пароль дають однакову відповідь 401, щоб не розкривати існування облікових записів.
    """
    if not body.email or not body.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email et mot de passe requis")

    user = crud.get_user_by_email(db, body.email)
    if user is None or not user.password:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)
    if not auth_service.verify_password(body.password, user.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    token = auth_service.create_session(db, user.id)
    auth_service.set_auth_cookie(response, token)
    return user

@app.post("/api/auth/oauth", response_model=schemas.UserResponse, tags=["Auth"], dependencies=auth_limits)
def oauth_login(body: schemas.OAuthLogin, response: Response, db: Session = Depends(get_db)):
    """
    Вхід через OAuth-провайдера після нативної авторизації на клієнті.

    Пошук відбувається за ID провайдера, потім за email: наявний обліковий
    запис з тим самим email отримує прив'язку до провайдера без підтвердження.
    Якщо нічого не знайдено, створюється користувач без пароля.

    :raises HTTPException: 400, якщо бракує provider/providerId/email або провайдер не підтримується.
    """
    if not body.provider or not body.provider_id or not body.email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Données OAuth manquantes")
    if body.provider != AuthProvider.apple:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Fournisseur OAuth non pris en charge")

    user = crud.get_user_by_provider_id(db, body.provider_id)
    if user is None:
        user = crud.get_user_by_email(db, body.email)
        if user:
            logger.info(f"Linking {body.provider.value} identity to existing user {user.id}")
            user = crud.link_provider(db, user, body.provider, body.provider_id, body.profile_image)
        else:
            user = crud.create_user(
                db,
                body.email,
                name=body.name,
                auth_provider=body.provider,
                provider_id=body.provider_id,
                profile_image=body.profile_image,
            )

    token = auth_service.create_session(db, user.id)
    auth_service.set_auth_cookie(response, token)
    return user

@app.get("/api/auth/user", response_model=schemas.UserResponse, tags=["Auth"])
def read_current_user(current_user: models.User = Depends(auth_service.get_current_user_with_bearer)):
    return current_user

@app.post("/api/auth/logout", response_model=schemas.MessageResponse, tags=["Auth"])
def logout(response: Response, token: Optional[str] = Depends(auth_service.cookie_scheme), db: Session = Depends(get_db)):
    """Видаляє поточну сесію (якщо є) та cookie. Завжди успішний."""
    if token:
        auth_service.revoke_session(db, token)
    auth_service.clear_auth_cookie(response)
    return {"message": "Déconnecté"}


@app.put("/api/users/{user_id}/role", response_model=schemas.UserResponse, tags=["Users"])
def update_user_role(
    user_id: str,
    new_role: schemas.UserRoleUpdate,
    db: Session = Depends(get_db),
    admin_user: models.User = Depends(role_required(Role.admin, Role.superadmin))
):
    user = crud.get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Utilisateur non trouvé")

    logger.info(f"User {admin_user.id} set role of {user.id} to {new_role.role.value}")
    return crud.update_user_role(db, user, new_role.role)

@app.patch("/api/users/me/profile-image", response_model=schemas.UserResponse, tags=["Users"])
def update_profile_image(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth_service.get_current_user)
):
    image_url = upload_profile_image(file.file.read(), current_user.id)
    return crud.update_profile_image(db, current_user, image_url)


@app.get("/api/quotes", response_model=List[schemas.QuoteResponse], tags=["Quotes"])
def read_quotes(db: Session = Depends(get_db), current_user: models.User = Depends(auth_service.get_current_user)):
    return crud.get_quotes(db, current_user.id)

@app.post("/api/quotes", response_model=schemas.QuoteResponse, status_code=status.HTTP_201_CREATED, tags=["Quotes"])
def create_quote(quote: schemas.QuoteCreate, db: Session = Depends(get_db), current_user: models.User = Depends(auth_service.get_current_user)):
    return crud.create_quote(db, quote, current_user.id)

@app.get("/api/quotes/{quote_id}", response_model=schemas.QuoteResponse, tags=["Quotes"])
def read_quote(quote_id: str, db: Session = Depends(get_db), current_user: models.User = Depends(auth_service.get_current_user)):
    quote = crud.get_quote(db, quote_id, current_user.id)
    if quote is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Devis non trouvé")
    return quote

@app.get("/api/invoices", response_model=List[schemas.InvoiceResponse], tags=["Invoices"])
def read_invoices(db: Session = Depends(get_db), current_user: models.User = Depends(auth_service.get_current_user)):
    return crud.get_invoices(db, current_user.id)

@app.get("/api/invoices/{invoice_id}", response_model=schemas.InvoiceResponse, tags=["Invoices"])
def read_invoice(invoice_id: str, db: Session = Depends(get_db), current_user: models.User = Depends(auth_service.get_current_user)):
    invoice = crud.get_invoice(db, invoice_id, current_user.id)
    if invoice is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Facture non trouvée")
    return invoice

@app.get("/api/reservations", response_model=List[schemas.ReservationResponse], tags=["Reservations"])
def read_reservations(db: Session = Depends(get_db), current_user: models.User = Depends(auth_service.get_current_user)):
    return crud.get_reservations(db, current_user.id)

@app.post("/api/reservations", response_model=schemas.ReservationResponse, status_code=status.HTTP_201_CREATED, tags=["Reservations"])
def create_reservation(reservation: schemas.ReservationCreate, db: Session = Depends(get_db), current_user: models.User = Depends(auth_service.get_current_user)):
    return crud.create_reservation(db, reservation, current_user.id)

@app.get("/api/reservations/{reservation_id}", response_model=schemas.ReservationResponse, tags=["Reservations"])
def read_reservation(reservation_id: str, db: Session = Depends(get_db), current_user: models.User = Depends(auth_service.get_current_user)):
    reservation = crud.get_reservation(db, reservation_id, current_user.id)
    if reservation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Réservation non trouvée")
    return reservation

@app.get("/api/notifications", response_model=List[schemas.NotificationResponse], tags=["Notifications"])
def read_notifications(db: Session = Depends(get_db), current_user: models.User = Depends(auth_service.get_current_user)):
    return crud.get_notifications(db, current_user.id)

@app.put("/api/notifications/{notification_id}/read", response_model=schemas.NotificationResponse, tags=["Notifications"])
def mark_notification_read(notification_id: str, db: Session = Depends(get_db), current_user: models.User = Depends(auth_service.get_current_user)):
    notification = crud.mark_notification_read(db, notification_id, current_user.id)
    if notification is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification non trouvée")
    return notification

@app.get("/api/services", response_model=List[schemas.ServiceResponse], tags=["Services"])
def read_services():
    return SERVICES

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
