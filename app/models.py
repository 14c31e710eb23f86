# Copyright (c) 2026 Mohammed Hassan. All rights reserved.
# Proprietary and confidential. Unauthorized copying, modification, distribution, or use is prohibited.

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, ForeignKey, Boolean, Float, Numeric
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

class AdminUser(Base):
    __tablename__ = "admin_users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=True)
    name = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)
    is_superadmin = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class User(Base):
    """An end user of the mobile app."""
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=True)
    email = Column(String, unique=True, index=True, nullable=False)
    avatar = Column(String, nullable=True)
    status = Column(String, nullable=False, default="active", index=True) # active, inactive, banned
    is_premium = Column(Boolean, default=False)
    plan = Column(String, nullable=True) # free, premium, pro
    streak = Column(Integer, default=0)

    language = Column(String, default="tr")
    timezone = Column(String, nullable=True)
    age = Column(Integer, nullable=True)
    goals = Column(JSON, nullable=True)
    motivation_level = Column(String, nullable=True)
    stress_level = Column(String, nullable=True)
    social_support = Column(String, nullable=True)

    notifications = Column(JSON, nullable=True)
    global_enabled = Column(Boolean, default=True)

    last_activity = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    tasks = relationship("Task", back_populates="user", cascade="all, delete-orphan")
    relapses = relationship("Relapse", back_populates="user", cascade="all, delete-orphan")
    devices = relationship("Device", back_populates="user", cascade="all, delete-orphan")
    subscriptions = relationship("Subscription", back_populates="user")

class Task(Base):
    __tablename__ = "tasks"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    user_name = Column(String, nullable=True)
    relapse_id = Column(Integer, ForeignKey("relapses.id", ondelete="SET NULL"), nullable=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String, nullable=False, index=True)
    difficulty = Column(String, nullable=False, default="easy") # easy, medium, hard
    status = Column(String, nullable=False, default="active", index=True) # active, completed, expired

    due_date = Column(DateTime(timezone=True), nullable=True)
    ai_confidence = Column(Float, default=85)
    estimated_duration = Column(Integer, nullable=True)
    tags = Column(JSON, nullable=True)
    motivational_message = Column(Text, nullable=True)
    tips = Column(JSON, nullable=True)
    expected_benefits = Column(JSON, nullable=True)

    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="tasks")
    relapse = relationship("Relapse")

class Relapse(Base):
    __tablename__ = "relapses"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    trigger = Column(String, nullable=True)
    mood = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    severity = Column(String, nullable=False, default="medium") # low, medium, high
    previous_streak = Column(Integer, default=0)
    time = Column(String, nullable=True) # time-of-day label
    date = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    recovery = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="relapses")

class Device(Base):
    __tablename__ = "devices"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    device_id = Column(String, unique=True, index=True, nullable=False)
    device_name = Column(String, nullable=False)
    device_type = Column(String, nullable=False)
    os = Column(String, nullable=False)
    browser = Column(String, nullable=True)
    ip_address = Column(String, nullable=True, index=True)
    location = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)
    is_trusted = Column(Boolean, default=False)
    last_seen = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="devices")

class FAQ(Base):
    __tablename__ = "faqs"
    id = Column(Integer, primary_key=True, index=True)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    category = Column(String, nullable=False, index=True)
    language = Column(String, nullable=False, default="tr", index=True)
    is_published = Column(Boolean, default=True)
    sort_order = Column(Integer, default=0)
    tags = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class Notification(Base):
    __tablename__ = "notifications"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String, nullable=False, default="push") # push, email, in_app
    target_group = Column(String, nullable=False, default="all")
    scheduled_at = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(String, nullable=False, default="active", index=True) # active, paused, completed, cancelled
    frequency = Column(String, nullable=False, default="once") # once, daily, weekly, monthly
    sent_count = Column(Integer, default=0)
    last_sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class NotificationTemplate(Base):
    __tablename__ = "notification_templates"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    subject = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    variables = Column(JSON, nullable=True)
    type = Column(String, nullable=False, default="motivation", index=True) # motivation, daily_reminder, marketing, system
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class NotificationLog(Base):
    """One delivery of a notification, tracked through the app's receipts."""
    __tablename__ = "notification_logs"
    id = Column(Integer, primary_key=True, index=True)
    notification_id = Column(Integer, ForeignKey("notifications.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String, nullable=False)
    status = Column(String, nullable=False, default="sent", index=True) # sent, delivered, read, clicked, failed
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    clicked_at = Column(DateTime(timezone=True), nullable=True)

class Message(Base):
    """Inbox entry: bug reports, feedback and support requests from users."""
    __tablename__ = "messages"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    reply_to_id = Column(Integer, ForeignKey("messages.id", ondelete="SET NULL"), nullable=True)
    sender = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String, nullable=False, default="feedback", index=True) # bug, feedback, support, system
    status = Column(String, nullable=False, default="pending", index=True) # pending, read, replied
    priority = Column(String, nullable=False, default="medium") # low, medium, high, urgent
    tags = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class Ad(Base):
    __tablename__ = "ads"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    image_url = Column(Text, nullable=True)
    target_url = Column(Text, nullable=False)
    type = Column(String, nullable=False, default="banner") # banner, interstitial, native, video
    status = Column(String, nullable=False, default="active", index=True) # active, paused, completed
    placement = Column(String, nullable=False)
    targeting = Column(JSON, nullable=True)
    budget = Column(Float, nullable=True)
    spent = Column(Float, default=0)
    impressions = Column(Integer, default=0)
    clicks = Column(Integer, default=0)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class Product(Base):
    __tablename__ = "products"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String, nullable=False, default="USD")
    interval = Column(String, nullable=False, default="monthly") # monthly, yearly
    features = Column(JSON, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    subscriptions = relationship("Subscription", back_populates="product", cascade="all, delete-orphan")

class Subscription(Base):
    __tablename__ = "subscriptions"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String, nullable=False, default="active", index=True) # active, cancelled, expired, pending
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String, nullable=False, default="USD")
    payment_method = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="subscriptions")
    product = relationship("Product", back_populates="subscriptions")

class SystemSetting(Base):
    __tablename__ = "system_settings"
    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, unique=True, index=True, nullable=False)
    value = Column(Text, nullable=False)
    type = Column(String, nullable=False, default="string") # string, number, boolean, json
    category = Column(String, nullable=False, default="app", index=True)
    description = Column(Text, nullable=True)
    is_public = Column(Boolean, default=False)
    updated_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class BlockedIP(Base):
    __tablename__ = "blocked_ips"
    id = Column(Integer, primary_key=True, index=True)
    ip = Column(String, unique=True, index=True, nullable=False)
    reason = Column(Text, nullable=False)
    blocked_by = Column(String, nullable=False)
    attempts = Column(Integer, default=1)
    location = Column(String, default="Unknown")
    status = Column(String, nullable=False, default="active") # active, permanent, temporary, expired
    blocked_at = Column(DateTime(timezone=True), server_default=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=True)

class AuditLog(Base):
    __tablename__ = "audit_logs"
    id = Column(Integer, primary_key=True, index=True)
    action = Column(String, nullable=False, index=True)
    resource = Column(String, nullable=False, index=True)
    resource_id = Column(String, nullable=True)
    admin_id = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    admin_name = Column(String, nullable=True)
    details = Column(JSON, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
