from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ParticipantStatus = Literal["pending", "accepted", "rejected"]
ParticipantType = Literal["event", "class"]
ClassType = Literal["private", "no private"]
ClassStatus = Literal["active", "inactive", "upcoming", "on going"]
EventStatus = Literal["upcoming", "ongoing", "completed", "cancelled"]
ActiveStatus = Literal["active", "inactive"]
PartnerType = Literal["corporate", "academic", "nonprofit", "government"]
VerificationStatus = Literal["pending", "verified", "invalid"]


def _coerce_epoch_millis(v: Any) -> Any:
    """Accept epoch millis or an ISO date/datetime string from HTML inputs."""
    if v is None or isinstance(v, (int, float)):
        return v
    s = str(v).strip()
    if s == "":
        return None
    if s.lstrip("-").isdigit():
        return int(s)
    parsed = datetime.fromisoformat(s)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


class StoreModel(BaseModel):
    """Base for records kept in the document store.

    Wire names are camelCase; the record id is the store key and is never
    written inside the value.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_store(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"id"})

    @classmethod
    def from_store(cls, record_id: str, data: Dict[str, Any]):
        return cls.model_validate({**data, "id": record_id})


class Participant(StoreModel):
    id: str = ""
    name: str = ""
    phone_number: str = ""
    email: str = ""
    birth_date: Optional[int] = None
    birth_place: str = ""
    address: str = ""
    current_residence: str = ""
    reason: str = ""
    status: ParticipantStatus = "pending"
    type: ParticipantType = "class"
    last_education: str = ""
    class_id: Optional[str] = None
    event_id: Optional[str] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class ClassFormData(StoreModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    category: str = ""
    type: ClassType = "no private"
    start_date: Optional[int] = None
    end_date: Optional[int] = None
    price: float = Field(0.0, ge=0)
    status: ClassStatus = "upcoming"
    image: str = ""
    color: Optional[str] = None
    icon: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    def _coerce_dates(cls, v: Any) -> Any:
        return _coerce_epoch_millis(v)


class TrainingClass(ClassFormData):
    id: str = ""
    name: str = ""
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class EventFormData(StoreModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    category_id: str = ""
    category_name: str = ""
    trainer_id: str = ""
    trainer_name: str = ""
    partner_id: Optional[str] = None
    partner_name: Optional[str] = None
    location: str = ""
    start_date: Optional[int] = None
    end_date: Optional[int] = None
    price: float = Field(0.0, ge=0)
    capacity: int = Field(0, ge=0)
    enrolled: int = Field(0, ge=0)
    status: EventStatus = "upcoming"
    image: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    def _coerce_dates(cls, v: Any) -> Any:
        return _coerce_epoch_millis(v)


class Event(EventFormData):
    id: str = ""
    title: str = ""
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class SocialMedia(StoreModel):
    linkedin: Optional[str] = None
    twitter: Optional[str] = None
    website: Optional[str] = None


class TrainerFormData(StoreModel):
    name: str = Field(..., min_length=1)
    email: str = ""
    specialization: str = ""
    bio: str = ""
    experience: int = Field(0, ge=0)
    rating: Optional[float] = None
    status: ActiveStatus = "active"
    avatar: Optional[str] = None
    phone: Optional[str] = None
    social_media: Optional[SocialMedia] = None


class Trainer(TrainerFormData):
    id: str = ""
    name: str = ""
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class PartnerFormData(StoreModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    type: PartnerType = "corporate"
    website: Optional[str] = None
    logo: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    status: ActiveStatus = "active"


class Partner(PartnerFormData):
    id: str = ""
    name: str = ""
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class EventCategoryFormData(StoreModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    color: Optional[str] = None
    icon: Optional[str] = None
    status: ActiveStatus = "active"


class EventCategory(EventCategoryFormData):
    id: str = ""
    name: str = ""
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class PaymentFileFormData(StoreModel):
    participant_id: str = Field(..., min_length=1)
    file_path: str = ""
    verified: bool = False
    verification_date: Optional[int] = None
    verification_status: VerificationStatus = "pending"

    @field_validator("verification_date", mode="before")
    def _coerce_verification_date(cls, v: Any) -> Any:
        return _coerce_epoch_millis(v)


class PaymentFile(PaymentFileFormData):
    id: str = ""
    participant_id: str = ""


class PaymentDetail(BaseModel):
    """Participant and class joined for one payment; ``class_`` is None when unavailable."""

    model_config = ConfigDict(populate_by_name=True)

    participant: Participant
    class_: Optional[TrainingClass] = Field(default=None, alias="class")
