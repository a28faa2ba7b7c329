"""
Перевірка особи через зовнішній PWA-бекенд.

Використовується маршрутами чату, коли ``CHAT_AUTH_MODE=remote``: cookie
клієнта пересилається на ``REMOTE_AUTH_URL``, а відповідь з ``id`` і ``role``
перетворюється на :class:`schemas.Identity`.
"""
import logging
from typing import Optional

import httpx

import config
import schemas

logger = logging.getLogger(__name__)


async def fetch_remote_identity(cookie_header: Optional[str]) -> Optional[schemas.Identity]:
    """
    :param cookie_header: Сирий заголовок ``Cookie`` вхідного запиту.
    :return: Особа користувача або None, якщо cookie немає, бекенд відхилив його
        або повернув непридатну відповідь.
    :raises httpx.HTTPError: Якщо зовнішній бекенд недоступний.
    """
    if not cookie_header:
        return None

    async with httpx.AsyncClient(timeout=config.REMOTE_AUTH_TIMEOUT) as client:
        response = await client.get(config.REMOTE_AUTH_URL, headers={"Cookie": cookie_header})

    if not response.is_success:
        logger.info(f"Remote auth rejected the session with status {response.status_code}")
        return None

    try:
        user = response.json()
        return schemas.Identity(user_id=str(user["id"]), role=user["role"])
    except (ValueError, KeyError, TypeError) as e:
        logger.warning(f"Remote auth returned a malformed identity: {e!r}")
        return None
