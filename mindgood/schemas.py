from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictBool


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# Admin: users
class RoleUpdate(BaseModel):
    role: str


class StatusUpdate(BaseModel):
    status: str


# Admin: therapists / reviews
class FeatureUpdate(BaseModel):
    isFeatured: StrictBool


class VisibilityUpdate(BaseModel):
    isPublic: StrictBool


# Admin: payments
class RefundRequest(BaseModel):
    reason: str = "Admin initiated refund"


class PlatformSettingsUpdate(BaseModel):
    """Settings body; unknown keys are stored as-is"""

    model_config = ConfigDict(extra="allow")

    supportEmail: Optional[str] = None
    supportPhone: Optional[str] = None
    platformCommission: Optional[float] = None
    payoutScheduleDays: Optional[int] = Field(default=None, ge=0)


# Payments
class CreateIntentRequest(BaseModel):
    appointmentId: Optional[str] = None
    amount: Optional[float] = Field(default=None, gt=0)
    currency: str = "usd"


# Bookings
class BookingRequest(BaseModel):
    therapistId: Optional[str] = None
    scheduledFor: Optional[str] = None
    duration: int = Field(default=50, ge=15, le=180)
    sessionType: str = "individual"
    notes: Optional[str] = ""


class CheckoutSessionRequest(BaseModel):
    therapistId: str = Field(..., min_length=1)
    therapistName: str = Field(..., min_length=1)
    therapistEmail: EmailStr
    appointmentDate: str = Field(..., min_length=1)
    appointmentTime: str = Field(..., min_length=1)
    duration: int = Field(..., ge=15, le=180)
    amount: float = Field(..., ge=1)
    currency: str = "usd"
    clientName: str = Field(..., min_length=1)
    clientEmail: EmailStr
    notes: Optional[str] = None


# Video
class AgoraTokenRequest(BaseModel):
    channelName: Optional[str] = None
    userId: Optional[str] = None
