import base64
import binascii
import io
import os
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import Response
from PIL import Image as PILImage, UnidentifiedImageError
from sqlalchemy import select
from sqlalchemy.orm import Session

from core.config import settings
from db.database import get_session
from db.image import LogoImage

router = APIRouter()

EXT_TO_CONTENT_TYPE = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}


def _check_image(file_data: bytes) -> None:
    if not file_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image file is empty")
    if len(file_data) > settings.max_logo_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Image size must be less than {settings.max_logo_bytes // 1024} KB",
        )
    try:
        with PILImage.open(io.BytesIO(file_data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be an image")


def _store_logo(db: Session, file_data: bytes, content_type: str, filename: str) -> dict:
    logo = LogoImage(data=file_data, content_type=content_type, filename=filename)
    db.add(logo)
    db.commit()
    db.refresh(logo)
    return {
        "id": logo.id,
        "url": f"/qr/logos/{logo.id}",
        "name": filename,
    }


@router.post("/upload")
def upload_logo(
    file: Optional[UploadFile] = File(None),
    base64_image: Optional[str] = Form(None),
    db: Session = Depends(get_session),
):
    """
    Upload a logo for QR codes.
    Accepts either a file upload or a base64 (data URL) image.
    Returns the id to pass as `logo_id` in QR options.
    """
    if file is not None:
        file_data = file.file.read()
        filename = file.filename or "logo.png"
        content_type = (file.content_type or "").strip().lower()
        ext = os.path.splitext(filename)[1].lower().lstrip(".")
        if content_type and content_type != "application/octet-stream" and not content_type.startswith("image/"):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be an image")
        _check_image(file_data)
        if not content_type or content_type == "application/octet-stream":
            content_type = EXT_TO_CONTENT_TYPE.get(ext, "image/png")
        return _store_logo(db, file_data, content_type, filename)

    if base64_image:
        content_type = "image/png"
        if "," in base64_image:
            prefix, b64_payload = base64_image.split(",", 1)
            base64_image = b64_payload
            if prefix.startswith("data:") and ";" in prefix:
                content_type = prefix.split(";")[0].replace("data:", "").strip() or content_type
        try:
            file_data = base64.b64decode(base64_image, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid base64 image")
        _check_image(file_data)
        return _store_logo(db, file_data, content_type, "logo")

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Either 'file' or 'base64_image' must be provided",
    )


def load_logo(db: Session, logo_id: str) -> LogoImage:
    row = db.execute(select(LogoImage).where(LogoImage.id == logo_id)).scalar_one_or_none()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Logo not found")
    return row


@router.get("/{logo_id}", response_class=Response)
def serve_logo(logo_id: str, db: Session = Depends(get_session)):
    """Serve logo binary by id so previews can reference it."""
    row = load_logo(db, logo_id)
    return Response(content=bytes(row.data), media_type=row.content_type)
