from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Literal

Difficulty = Literal["easy", "medium", "hard"]

def page_of(schema: type[BaseModel], items: list, pagination: dict[str, Any]) -> dict[str, Any]:
    """Listing envelope shared by every paginated endpoint."""
    return {"items": [schema.model_validate(item) for item in items], "pagination": pagination}

class IdsIn(BaseModel):
    ids: list[int] = Field(min_length=1)

class BulkActionIn(IdsIn):
    action: str

# Auth

class AdminOut(BaseModel):
    id: int
    email: str
    name: str | None = None
    is_active: bool
    is_superadmin: bool
    class Config:
        from_attributes = True

class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    admin: AdminOut

# Users

class UserCreate(BaseModel):
    email: str
    name: str | None = None
    avatar: str | None = None
    is_premium: bool = False
    plan: str | None = None
    language: str = "tr"
    timezone: str | None = None
    age: int | None = Field(default=None, ge=0)
    goals: list[str] | None = None
    motivation_level: str | None = None
    stress_level: str | None = None
    social_support: str | None = None
    notifications: dict[str, bool] | None = None

class UserUpdate(BaseModel):
    email: str | None = None
    name: str | None = None
    avatar: str | None = None
    status: Literal["active", "inactive", "banned"] | None = None
    is_premium: bool | None = None
    plan: str | None = None
    streak: int | None = Field(default=None, ge=0)
    language: str | None = None
    timezone: str | None = None
    age: int | None = Field(default=None, ge=0)
    goals: list[str] | None = None
    motivation_level: str | None = None
    stress_level: str | None = None
    social_support: str | None = None
    notifications: dict[str, bool] | None = None
    global_enabled: bool | None = None

class UserOut(BaseModel):
    id: int
    name: str | None = None
    email: str
    avatar: str | None = None
    status: str
    is_premium: bool | None = None
    plan: str | None = None
    streak: int | None = 0
    language: str | None = None
    timezone: str | None = None
    age: int | None = None
    goals: list[str] | None = None
    motivation_level: str | None = None
    stress_level: str | None = None
    social_support: str | None = None
    notifications: dict[str, Any] | None = None
    global_enabled: bool | None = None
    last_activity: datetime | None = None
    created_at: datetime | None = None
    class Config:
        from_attributes = True

class UserDetailOut(UserOut):
    counts: dict[str, int] = Field(default_factory=dict)

# Tasks

class TaskCreate(BaseModel):
    user_id: int
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    category: str = Field(min_length=1)
    difficulty: Difficulty = "easy"
    due_date: datetime | None = None
    ai_confidence: float | None = Field(default=None, ge=0, le=100)
    estimated_duration: int | None = Field(default=None, ge=0)
    tags: list[str] | None = None
    motivational_message: str | None = None
    tips: list[str] | None = None
    expected_benefits: list[str] | None = None
    relapse_id: int | None = None

class TaskUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    category: str | None = None
    difficulty: Difficulty | None = None
    status: Literal["active", "completed", "expired"] | None = None
    due_date: datetime | None = None
    ai_confidence: float | None = Field(default=None, ge=0, le=100)
    estimated_duration: int | None = Field(default=None, ge=0)
    tags: list[str] | None = None
    motivational_message: str | None = None
    tips: list[str] | None = None
    expected_benefits: list[str] | None = None

class TaskOut(BaseModel):
    id: int
    user_id: int
    user_name: str | None = None
    relapse_id: int | None = None
    title: str
    description: str
    category: str
    difficulty: str
    status: str
    due_date: datetime | None = None
    ai_confidence: float | None = None
    estimated_duration: int | None = None
    tags: list[str] | None = None
    motivational_message: str | None = None
    tips: list[str] | None = None
    expected_benefits: list[str] | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    class Config:
        from_attributes = True

class BulkStatusIn(IdsIn):
    status: Literal["active", "completed", "expired"]

class AIGenerateIn(BaseModel):
    user_id: int
    relapse_id: int | None = None
    task_type: Literal["single", "bulk", "personalized"] = "single"

class AIBulkGenerateIn(BaseModel):
    user_ids: list[int] | None = None
    exclude_user_ids: list[int] = Field(default_factory=list)

# Relapses

class RelapseCreate(BaseModel):
    user_id: int
    trigger: str | None = None
    mood: str | None = None
    notes: str | None = None
    severity: Literal["low", "medium", "high"] = "medium"
    previous_streak: int = Field(default=0, ge=0)
    time: str | None = None
    date: datetime | None = None
    recovery: str | None = None

class RelapseUpdate(BaseModel):
    trigger: str | None = None
    mood: str | None = None
    notes: str | None = None
    severity: Literal["low", "medium", "high"] | None = None
    previous_streak: int | None = Field(default=None, ge=0)
    time: str | None = None
    date: datetime | None = None
    recovery: str | None = None

class RelapseOut(BaseModel):
    id: int
    user_id: int
    trigger: str | None = None
    mood: str | None = None
    notes: str | None = None
    severity: str
    previous_streak: int | None = 0
    time: str | None = None
    date: datetime | None = None
    recovery: str | None = None
    class Config:
        from_attributes = True

# Devices

class DeviceCreate(BaseModel):
    user_id: int
    device_id: str = Field(min_length=1)
    device_name: str
    device_type: str
    os: str
    browser: str | None = None
    ip_address: str | None = None
    location: str | None = None
    is_trusted: bool = False

class DeviceUpdate(BaseModel):
    device_name: str | None = None
    device_type: str | None = None
    os: str | None = None
    browser: str | None = None
    ip_address: str | None = None
    location: str | None = None
    is_active: bool | None = None
    is_trusted: bool | None = None

class DeviceTouchIn(BaseModel):
    device_id: str
    ip_address: str | None = None
    location: str | None = None

class DeviceOut(BaseModel):
    id: int
    user_id: int
    device_id: str
    device_name: str
    device_type: str
    os: str
    browser: str | None = None
    ip_address: str | None = None
    location: str | None = None
    is_active: bool
    is_trusted: bool
    last_seen: datetime | None = None
    created_at: datetime | None = None
    class Config:
        from_attributes = True

# FAQ

class FAQCreate(BaseModel):
    question: str
    answer: str
    category: str
    language: str = "tr"
    is_published: bool | None = None
    sort_order: int | None = None
    tags: list[str] | None = None

class FAQUpdate(BaseModel):
    question: str | None = None
    answer: str | None = None
    category: str | None = None
    language: str | None = None
    is_published: bool | None = None
    sort_order: int | None = None
    tags: list[str] | None = None

class FAQOut(BaseModel):
    id: int
    question: str
    answer: str
    category: str
    language: str
    is_published: bool
    sort_order: int
    tags: list[str] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    class Config:
        from_attributes = True

class FAQOrderIn(BaseModel):
    id: int
    order: int

class FAQImportIn(BaseModel):
    items: list[dict[str, Any]]

# Notifications

class NotificationCreate(BaseModel):
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    type: Literal["push", "email", "in_app"] = "push"
    target_group: str = "all"
    scheduled_at: datetime
    frequency: Literal["once", "daily", "weekly", "monthly"] = "once"

class NotificationUpdate(BaseModel):
    title: str | None = None
    message: str | None = None
    type: Literal["push", "email", "in_app"] | None = None
    target_group: str | None = None
    scheduled_at: datetime | None = None
    status: Literal["active", "paused", "completed", "cancelled"] | None = None
    frequency: Literal["once", "daily", "weekly", "monthly"] | None = None

class NotificationOut(BaseModel):
    id: int
    title: str
    message: str
    type: str
    target_group: str
    scheduled_at: datetime
    status: str
    frequency: str
    sent_count: int | None = 0
    last_sent_at: datetime | None = None
    created_at: datetime | None = None
    class Config:
        from_attributes = True

TemplateType = Literal["motivation", "daily_reminder", "marketing", "system"]

class NotificationTemplateCreate(BaseModel):
    name: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    content: str = Field(min_length=1)
    variables: list[str] | None = None
    type: TemplateType = "motivation"
    is_active: bool = True

class NotificationTemplateUpdate(BaseModel):
    name: str | None = None
    subject: str | None = None
    content: str | None = None
    variables: list[str] | None = None
    type: TemplateType | None = None
    is_active: bool | None = None

class NotificationTemplateOut(BaseModel):
    id: int
    name: str
    subject: str
    content: str
    variables: list[str] | None = None
    type: str
    is_active: bool | None = True
    created_at: datetime | None = None
    class Config:
        from_attributes = True

class TemplateRenderIn(BaseModel):
    values: dict[str, Any] = {}

class NotificationFromTemplateIn(TemplateRenderIn):
    template_id: int
    type: Literal["push", "email", "in_app"] = "push"
    target_group: str = "all"
    scheduled_at: datetime
    frequency: Literal["once", "daily", "weekly", "monthly"] = "once"

class NotificationLogOut(BaseModel):
    id: int
    notification_id: int | None = None
    user_id: int | None = None
    title: str
    message: str
    type: str
    status: str
    error_message: str | None = None
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    read_at: datetime | None = None
    clicked_at: datetime | None = None
    class Config:
        from_attributes = True

class NotificationLogStatusIn(BaseModel):
    status: Literal["delivered", "read", "clicked", "failed"]
    error_message: str | None = None

# Messages

MessageType = Literal["bug", "feedback", "support", "system"]
Priority = Literal["low", "medium", "high", "urgent"]

class MessageCreate(BaseModel):
    sender: str = Field(min_length=1)
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    type: MessageType = "feedback"
    priority: Priority = "medium"
    user_id: int | None = None
    tags: list[str] | None = None

class MessageUpdate(BaseModel):
    title: str | None = None
    message: str | None = None
    type: MessageType | None = None
    status: Literal["pending", "read", "replied"] | None = None
    priority: Priority | None = None
    tags: list[str] | None = None

class MessageOut(BaseModel):
    id: int
    user_id: int | None = None
    reply_to_id: int | None = None
    sender: str
    title: str
    message: str
    type: str
    status: str
    priority: str
    tags: list[str] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    class Config:
        from_attributes = True

class MessageReplyIn(BaseModel):
    message: str = Field(min_length=1)

# Ads

class AdCreate(BaseModel):
    title: str
    description: str
    image_url: str | None = None
    target_url: str
    type: Literal["banner", "interstitial", "native", "video"] = "banner"
    placement: str
    targeting: dict[str, Any] | None = None
    budget: float | None = Field(default=None, ge=0)
    start_date: datetime
    end_date: datetime | None = None

class AdUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    image_url: str | None = None
    target_url: str | None = None
    type: Literal["banner", "interstitial", "native", "video"] | None = None
    status: Literal["active", "paused", "completed"] | None = None
    placement: str | None = None
    targeting: dict[str, Any] | None = None
    budget: float | None = Field(default=None, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None

class AdSpendIn(BaseModel):
    amount: float = Field(ge=0)

class AdOut(BaseModel):
    id: int
    title: str
    description: str
    image_url: str | None = None
    target_url: str
    type: str
    status: str
    placement: str
    targeting: dict[str, Any] | None = None
    budget: float | None = None
    spent: float | None = 0
    impressions: int | None = 0
    clicks: int | None = 0
    start_date: datetime
    end_date: datetime | None = None
    created_at: datetime | None = None
    class Config:
        from_attributes = True

# Billing

class ProductCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    price: float = Field(ge=0)
    currency: str = "USD"
    interval: Literal["monthly", "yearly"] = "monthly"
    features: list[str] | None = None
    is_active: bool = True

class ProductUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    currency: str | None = None
    interval: Literal["monthly", "yearly"] | None = None
    features: list[str] | None = None
    is_active: bool | None = None

class ProductOut(BaseModel):
    id: int
    name: str
    description: str | None = None
    price: float
    currency: str
    interval: str
    features: list[str] | None = None
    is_active: bool
    created_at: datetime | None = None
    class Config:
        from_attributes = True

class SubscriptionCreate(BaseModel):
    user_id: int
    product_id: int
    payment_method: str
    start_date: datetime | None = None
    end_date: datetime | None = None

class SubscriptionUpdate(BaseModel):
    status: Literal["active", "cancelled", "expired", "pending"] | None = None
    end_date: datetime | None = None
    payment_method: str | None = None

class SubscriptionOut(BaseModel):
    id: int
    user_id: int
    product_id: int
    status: str
    start_date: datetime
    end_date: datetime | None = None
    price: float
    currency: str
    payment_method: str
    created_at: datetime | None = None
    class Config:
        from_attributes = True

# Settings

class SettingCreate(BaseModel):
    key: str = Field(min_length=1)
    value: Any
    type: Literal["string", "number", "boolean", "json"] = "string"
    category: str = "app"
    description: str | None = None
    is_public: bool = False

class SettingUpdate(BaseModel):
    value: Any = None
    type: Literal["string", "number", "boolean", "json"] | None = None
    category: str | None = None
    description: str | None = None
    is_public: bool | None = None

class SettingValueIn(BaseModel):
    value: Any

class SettingBulkItem(BaseModel):
    key: str
    value: Any

class SettingImportIn(BaseModel):
    settings: list[dict[str, Any]]
    overwrite: bool = False

class MaintenanceIn(BaseModel):
    enabled: bool

class SettingOut(BaseModel):
    id: int
    key: str
    value: str
    type: str
    category: str
    description: str | None = None
    is_public: bool
    updated_by: str | None = None
    updated_at: datetime | None = None
    class Config:
        from_attributes = True

# Security

class BlockIPIn(BaseModel):
    ip: str = Field(min_length=1)
    reason: str = Field(min_length=1)
    status: Literal["active", "permanent", "temporary"] = "active"
    expires_at: datetime | None = None
    location: str | None = None

class BlockedIPOut(BaseModel):
    id: int
    ip: str
    reason: str
    blocked_by: str
    attempts: int | None = 1
    location: str | None = None
    status: str
    blocked_at: datetime | None = None
    expires_at: datetime | None = None
    class Config:
        from_attributes = True

class AuditLogOut(BaseModel):
    id: int
    action: str
    resource: str
    resource_id: str | None = None
    admin_id: int | None = None
    admin_name: str | None = None
    details: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime | None = None
    class Config:
        from_attributes = True
