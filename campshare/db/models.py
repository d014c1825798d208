from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from campshare.db.database import Base


class UserDB(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    campgrounds = relationship("CampgroundDB", back_populates="author")
    reviews = relationship("ReviewDB", back_populates="author")
    sessions = relationship("SessionDB", back_populates="user", cascade="all, delete-orphan")


class SessionDB(Base):
    __tablename__ = "sessions"
    token = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    user = relationship("UserDB", back_populates="sessions")


# Define the Campground table structure
class CampgroundDB(Base):
    __tablename__ = "campgrounds"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    location = Column(String(255), nullable=False)
    price = Column(Float, nullable=False)
    description = Column(Text, nullable=False)
    longitude = Column(Float, nullable=False)
    latitude = Column(Float, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    author = relationship("UserDB", back_populates="campgrounds")
    images = relationship(
        "ImageDB",
        back_populates="campground",
        cascade="all, delete-orphan",
        order_by="ImageDB.id",
    )
    reviews = relationship(
        "ReviewDB",
        back_populates="campground",
        cascade="all, delete-orphan",
        order_by="ReviewDB.id",
    )

    @property
    def geometry(self):
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}


class ImageDB(Base):
    __tablename__ = "images"
    id = Column(Integer, primary_key=True, index=True)
    url = Column(String(512), nullable=False)
    filename = Column(String(255), nullable=False, index=True)  # storage identifier used for deletion
    campground_id = Column(Integer, ForeignKey("campgrounds.id", ondelete="CASCADE"), nullable=False, index=True)

    campground = relationship("CampgroundDB", back_populates="images")


class ReviewDB(Base):
    __tablename__ = "reviews"
    id = Column(Integer, primary_key=True, index=True)
    rating = Column(Integer, nullable=False)
    body = Column(Text, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    campground_id = Column(Integer, ForeignKey("campgrounds.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    author = relationship("UserDB", back_populates="reviews")
    campground = relationship("CampgroundDB", back_populates="reviews")
