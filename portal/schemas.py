"""
Wire schemas for the chapter backend

Field names are snake_case in Python and camelCase on the wire. Unknown
fields are kept so presentation-only data (images, registration links, ...)
survives an edit round trip untouched.
"""

import datetime as dt
from typing import Optional, Union, List, Dict, Any, ClassVar, Type, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationInfo,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from portal.exceptions import ValidationError
from portal.logging_config import logger

Identifier = Union[str, int]

T = TypeVar("T", bound="PortalModel")


class PortalModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    # Fields a form must supply, with the label shown when one is missing
    REQUIRED_FIELDS: ClassVar[Dict[str, str]] = {}

    @classmethod
    def from_form(cls: Type[T], data: Dict[str, Any]) -> T:
        """Validate admin input, raising ValidationError with a readable message"""
        for name, label in cls.REQUIRED_FIELDS.items():
            value = _lookup(data, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(f"{label} is required", field=name)
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ()))
            raise ValidationError(f"Invalid {field or 'input'}: {first['msg']}", field=field or None)

    def to_payload(self) -> Dict[str, Any]:
        """Request body for create/update calls; the id travels in the URL"""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"id"}, mode="json")

    def same_id(self, other_id: Any) -> bool:
        own = getattr(self, "id", None)
        return own is not None and str(own) == str(other_id)

    @classmethod
    def wire_keys(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        """Rename snake_case field names to the camelCase keys a dumped record uses"""
        return {
            (to_camel(key) if key in cls.model_fields else key): value
            for key, value in data.items()
        }


def _lookup(data: Dict[str, Any], name: str) -> Any:
    if name in data:
        return data[name]
    camel = to_camel(name)
    if camel in data:
        return data[camel]
    if name == "date":
        return data.get("eventDate")
    return None


def parse_record(model: Type[T], item: Any) -> Optional[T]:
    """Parse one backend record; None when it is missing or unusable"""
    if not isinstance(item, dict):
        return None
    try:
        return model.model_validate(item, context={"lenient_dates": True})
    except PydanticValidationError as e:
        logger.warning(f"Skipping malformed {model.__name__} {item.get('id')}: {e.errors()[0]['msg']}")
        return None


def parse_list(model: Type[T], items: Any) -> List[T]:
    """Parse a backend list response, dropping records that cannot be read"""
    if not isinstance(items, list):
        return []
    records = (parse_record(model, item) for item in items)
    return [record for record in records if record is not None]


def parse_calendar_date(value: Any) -> Optional[dt.date]:
    """Accept YYYY-MM-DD or an ISO-8601 datetime; the calendar part is kept as written"""
    if value is None or value == "":
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if len(text) > 10 and text[10] in "T ":
            return dt.datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return dt.date.fromisoformat(text)
    raise ValueError(f"Unsupported date value: {value!r}")


# ==================== Auth ====================

class UserProfile(PortalModel):
    role: Optional[str] = None
    entity_id: Optional[str] = None
    name: str = ""
    email: str = ""

    @field_validator("entity_id", mode="before")
    @classmethod
    def _entity_id_as_str(cls, v):
        return None if v in (None, "") else str(v)


class LoginResponse(PortalModel):
    token: str
    user: UserProfile

    @field_validator("token")
    @classmethod
    def _token_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("empty token")
        return v


# ==================== Entity records ====================

class EntityProfile(PortalModel):
    REQUIRED_FIELDS = {"name": "Name"}

    id: Optional[Identifier] = None
    name: str = ""
    description: Optional[str] = None
    vision: Optional[str] = None
    mission: Optional[str] = None
    objectives: Optional[Any] = None
    image: Optional[str] = None
    is_active: Optional[bool] = None
    member_count: Optional[int] = None
    established_year: Optional[Union[int, str]] = None


class EventRecord(PortalModel):
    """
    One event of an entity.

    Which bucket an event belongs to is not stored here: it is the backend
    collection (events/past or events/upcoming) the record lives in.
    Records read from the backend may lack a usable date; those stay in
    whatever collection they were found in.
    """

    REQUIRED_FIELDS = {"title": "Title", "date": "Date"}

    id: Optional[Identifier] = None
    title: str = ""
    date: Optional[dt.date] = Field(
        default=None,
        validation_alias=AliasChoices("date", "eventDate"),
        serialization_alias="date",
    )
    time: Optional[str] = None
    venue: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    organizer: Optional[str] = None

    # Wire key the date arrived under, so edits write it back the same way
    _date_key: str = PrivateAttr(default="date")

    @model_validator(mode="wrap")
    @classmethod
    def _remember_date_key(cls, data: Any, handler):
        record = handler(data)
        if isinstance(data, dict) and "eventDate" in data and "date" not in data:
            record._date_key = "eventDate"
        return record

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, v, info: ValidationInfo):
        try:
            return parse_calendar_date(v)
        except ValueError:
            if info.context and info.context.get("lenient_dates"):
                return None
            raise

    @property
    def date_key(self) -> str:
        return self._date_key

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self._date_key != "date" and "date" in payload:
            payload[self._date_key] = payload.pop("date")
        return payload

    def merged(self, updates: Dict[str, Any]) -> "EventRecord":
        """Return a validated copy with `updates` applied over this record"""
        updates = self.wire_keys(updates)
        base = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        base.pop("date", None)
        if self.date is not None:
            base[self._date_key] = self.date.isoformat()
        if "date" in updates or "eventDate" in updates:
            base.pop("date", None)
            base.pop("eventDate", None)
        record = EventRecord.from_form({**base, **updates})
        if self._date_key != "date":
            record._date_key = self._date_key
        return record


class SlateMember(PortalModel):
    REQUIRED_FIELDS = {"name": "Name", "role": "Position"}

    id: Optional[Identifier] = None
    name: str = ""
    role: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    photo: Optional[str] = None
    bio: Optional[str] = None


ACHIEVEMENT_CATEGORIES = [
    "TECHNICAL",
    "RESEARCH",
    "INNOVATION",
    "COMPETITION",
    "SERVICE",
    "LEADERSHIP",
    "OTHER",
]


class Achievement(PortalModel):
    REQUIRED_FIELDS = {"title": "Title"}

    id: Optional[Identifier] = None
    title: str = ""
    description: Optional[str] = None
    achieved_by: Optional[str] = None
    achieved_date: Optional[str] = None
    category: Optional[str] = None
    competition: Optional[str] = None
    position: Optional[str] = None
    certificate: Optional[str] = None
    image: Optional[str] = None


class GalleryItem(PortalModel):
    REQUIRED_FIELDS = {"image_url": "Image URL"}

    id: Optional[Identifier] = None
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: str = ""
    event_date: Optional[str] = None
    tags: Optional[Union[str, List[str]]] = None
    photographer: Optional[str] = None
    is_public: bool = True
