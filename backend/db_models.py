"""
SQLAlchemy ORM models for the Rex360 backend.

Tables:
    posts          — news/blog posts with optional media
    slides         — hero banners and other section assets
    services       — registration service catalog (title, price, description)
    applications   — business-registration cases
    agent_profile  — single-row public agent identity
    audit_logs     — privileged admin actions
    transactions   — verified payment events (dedup ledger keyed by reference)
"""
from datetime import datetime

from sqlalchemy import (
    Column, Integer, BigInteger, String, Boolean, DateTime, Text, JSON, Index,
)

from database import Base


class Post(Base):
    """News posts shown on the public site."""
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(300), nullable=False)
    excerpt = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    category = Column(String(100), nullable=False, default="News")
    media_type = Column(String(20), nullable=True)  # "image" | "video" | None
    media_url = Column(Text, nullable=True)
    media_variants = Column(JSON(none_as_null=True), nullable=True)  # {"320": {"jpg": url, "webp": url}, ...}
    media_lqip = Column(Text, nullable=True)  # data:image/jpeg;base64,...
    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class Slide(Base):
    """Hero banners and other content assets, grouped by section."""
    __tablename__ = "slides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    section = Column(String(50), nullable=False, default="hero", index=True)
    title = Column(String(300), nullable=True)
    caption = Column(Text, nullable=True)
    media_type = Column(String(20), nullable=True)
    media_url = Column(Text, nullable=False)
    media_variants = Column(JSON(none_as_null=True), nullable=True)
    media_lqip = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Service(Base):
    """Registration services offered (business name, incorporation, ...)."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    price = Column(String(50), nullable=True)  # display price, e.g. "₦25,000"
    description = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Application(Base):
    """
    One business-registration case.

    status moves pending → in_progress → completed (or rejected). It is only
    mutated by an admin action or by a verified payment webhook.
    """
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(320), nullable=False, index=True)
    business_name = Column(String(300), nullable=False)
    service_name = Column(String(200), nullable=True)
    details = Column(JSON(none_as_null=True), nullable=True)  # directors, addresses, free-form answers
    status = Column(String(20), nullable=False, default="pending", index=True)
    is_express = Column(Boolean, nullable=False, default=False)
    payment_ref = Column(String(100), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AgentProfile(Base):
    """Public profile of the accredited agent (single row)."""
    __tablename__ = "agent_profile"

    id = Column(String(20), primary_key=True, default="primary")
    name = Column(String(200), nullable=True)
    title = Column(String(200), nullable=True)
    bio = Column(Text, nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(320), nullable=True)
    profile_url = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AuditLog(Base):
    """Append-only record of admin mutations."""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor = Column(String(320), nullable=False)
    action = Column(String(100), nullable=False)
    detail = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class Transaction(Base):
    """
    Verified payment events from the gateway.

    reference is unique: inserting a row is the idempotency claim for a
    webhook delivery, so gateway retries (on any instance) are dropped.
    """
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(100), unique=True, nullable=False, index=True)
    event = Column(String(50), nullable=False)
    email = Column(String(320), nullable=True)
    amount_minor = Column(BigInteger, nullable=True)  # kobo
    service_name = Column(String(200), nullable=True)
    application_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_transactions_email_created", "email", "created_at"),
    )
