from sqlalchemy import Column, DateTime, Integer, String

from .base import Base


class Document(Base):
    __tablename__ = "documents"
    # AUTOINCREMENT keeps deleted ids from being handed out again.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    filename = Column(String, nullable=False)                  # name supplied by the uploader
    filepath = Column(String, nullable=False, unique=True)     # storage key, relative to the storage dir
    filesize = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
