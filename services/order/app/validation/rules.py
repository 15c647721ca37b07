"""Running a pydantic body model against a raw JSON body.

Each body model declares its constraints on its fields; ``validate`` turns a
``ValidationError`` into one ``Violation`` per failing field, in declaration
order, so the caller gets every violation at once. Accepted values come back
as plain JSON values with trimmed strings.

    result = validate(CancelBody, payload)
    if not result.ok: ...
"""

from dataclasses import dataclass, field
from typing import Annotated, Any, ClassVar, Dict, FrozenSet, List, Mapping, Tuple, Type

from pydantic import AfterValidator, BaseModel, ConfigDict, StrictStr, StringConstraints, ValidationError

UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"


def _strip(value: str) -> str:
    return value.strip()


def TrimmedText(max_length: int):
    """A string of at most ``max_length`` characters as submitted, stored trimmed."""
    return Annotated[StrictStr, StringConstraints(max_length=max_length), AfterValidator(_strip)]


UuidText = Annotated[StrictStr, StringConstraints(pattern=UUID_PATTERN)]


@dataclass(frozen=True)
class Violation:
    field: str
    message: str
    value: Any = None
    location: str = "body"

    def as_dict(self) -> dict:
        return {"field": self.field, "message": self.message, "value": self.value, "location": self.location}


@dataclass(frozen=True)
class ValidationResult:
    violations: Tuple[Violation, ...] = ()
    values: Mapping[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.violations

    @property
    def messages(self) -> List[str]:
        return [v.message for v in self.violations]


class RequestBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # field -> message for any constraint failure on that field
    error_messages: ClassVar[Dict[str, str]] = {}
    # fields whose non-string values get "<field> must be a string"
    text_fields: ClassVar[FrozenSet[str]] = frozenset()

    @classmethod
    def message_for(cls, name: str, error: dict) -> str:
        if error["type"] == "missing":
            return f"{name} is required"
        if error["type"] == "string_type" and name in cls.text_fields:
            return f"{name} must be a string"
        return cls.error_messages.get(name) or error["msg"]


def _violations(model: Type[RequestBody], exc: ValidationError) -> Tuple[Violation, ...]:
    by_field: Dict[str, Violation] = {}
    for error in exc.errors():
        name = str(error["loc"][0]) if error["loc"] else "body"
        if name in by_field:
            continue
        value = None if error["type"] == "missing" else error.get("input")
        by_field[name] = Violation(name, model.message_for(name, error), value)
    return tuple(by_field.values())


def validate(model: Type[RequestBody], payload: Any) -> ValidationResult:
    if not isinstance(payload, Mapping):
        payload = {}
    try:
        parsed = model.model_validate(dict(payload))
    except ValidationError as exc:
        return ValidationResult(_violations(model, exc))
    # null and missing optional fields are both left out
    return ValidationResult((), parsed.model_dump(mode="json", exclude_none=True))
