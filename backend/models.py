"""
Pydantic models for request validation.

Free-text fields are sanitised on the way in (angle brackets escaped).
Responses are plain dicts built by the service layer.
"""
from typing import Annotated, Any, Optional, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

from domain.enums import ApplicationStatus
from utils.validators import is_valid_email, sanitize_payload, sanitize_text

CleanStr = Annotated[str, AfterValidator(sanitize_text)]


def _normalize_email(value: str) -> str:
    if not is_valid_email(value):
        raise ValueError("invalid email address")
    return value.strip().lower()


class ApiBase(BaseModel):
    """Shared base — accepts snake_case or camelCase keys from the frontend."""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


# ── Payments ────────────────────────────────────────────────────────

class InitializePaymentRequest(ApiBase):
    """Start a checkout for one registration service."""
    email: str = Field(..., description="Payer email")
    amount: Union[str, int] = Field(..., description="Display amount, e.g. '₦12,500'")
    service_name: CleanStr = Field(..., alias="serviceName", min_length=1)
    metadata: Optional[dict[str, Any]] = None

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("metadata")
    @classmethod
    def _metadata(cls, v):
        return sanitize_payload(v) if v is not None else v


# ── Applications ────────────────────────────────────────────────────

class ApplicationCreateRequest(ApiBase):
    """
    Public registration submission.

    Express handling and the payment reference are set only by an admin or a
    verified webhook; unknown keys such as isExpress are ignored.
    """
    email: str
    business_name: CleanStr = Field(..., alias="businessName", min_length=1, max_length=300)
    service_name: Optional[CleanStr] = Field(None, alias="serviceName", max_length=200)
    details: dict[str, Any] = Field(default_factory=dict)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("details")
    @classmethod
    def _details(cls, v):
        return sanitize_payload(v)


class ApplicationStatusRequest(ApiBase):
    status: ApplicationStatus


class ApplicationExpressRequest(ApiBase):
    is_express: bool = Field(..., alias="isExpress")


# ── Catalog / profile ───────────────────────────────────────────────

class ServiceUpdateRequest(ApiBase):
    """Partial update; omitted fields are left unchanged."""
    title: Optional[CleanStr] = Field(None, min_length=1, max_length=200)
    price: Optional[CleanStr] = Field(None, max_length=50)
    description: Optional[CleanStr] = None


class AgentProfileUpdateRequest(ApiBase):
    name: Optional[CleanStr] = Field(None, max_length=200)
    title: Optional[CleanStr] = Field(None, max_length=200)
    bio: Optional[CleanStr] = None
    phone: Optional[CleanStr] = Field(None, max_length=50)
    email: Optional[CleanStr] = Field(None, max_length=320)
    profile_url: Optional[str] = Field(None, alias="profileUrl")
