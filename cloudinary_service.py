import os
import cloudinary
import cloudinary.uploader
from typing import BinaryIO

cloudinary.config(
    cloud_name=os.environ.get("CLOUDINARY_NAME", "your_cloud_name"),
    api_key=os.environ.get("CLOUDINARY_API_KEY", "your_api_key"),
    api_secret=os.environ.get("CLOUDINARY_API_SECRET", "your_api_secret"),
    secure=True
)

PROFILE_IMAGE_FOLDER = os.environ.get("CLOUDINARY_FOLDER", "WheelService/ProfileImages")

def upload_profile_image(file_content: BinaryIO, user_id: str) -> str:
    """
    Завантажує зображення профілю, перезаписуючи попереднє для того ж користувача.

    :return: HTTPS-посилання на завантажене зображення.
    """
    r = cloudinary.uploader.upload(
        file_content,
        public_id=user_id,
        overwrite=True,
        folder=PROFILE_IMAGE_FOLDER
    )
    return r['secure_url']
