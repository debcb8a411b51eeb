import uuid
from sqlalchemy import Column, DateTime, LargeBinary, String
from sqlalchemy.sql import func
from .database import Base


class LogoImage(Base):
    """Uploaded logo binary, referenced by id from QR options."""
    __tablename__ = "logo_images"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    data = Column(LargeBinary, nullable=False)
    content_type = Column(String(255), nullable=False)
    filename = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
