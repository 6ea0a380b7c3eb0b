"""
Shape validation for ingestion request bodies.

Validators return a tagged result, Valid(value) or Invalid(errors), so
callers decide how to respond without catching exceptions.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, List, Mapping, Tuple, TypeVar, Union

from .schema import ClientMetadata

T = TypeVar("T")

# Nested sections whose values must all be strings
_STRING_SECTIONS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("browser", ("name", "version")),
    ("os", ("name", "version")),
    ("device", ("type", "model")),
)
_STRING_FIELDS = ("platform", "userAgent", "locale", "timezone", "referrer", "pageUrl", "clientTime")
_SCREEN_FIELDS = ("w", "h", "dpr")


@dataclass(frozen=True)
class FieldError:
    """A single validation failure at a dotted field path."""
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path} {self.message}"


@dataclass(frozen=True)
class Valid(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return "; ".join(str(e) for e in self.errors)


ValidationResult = Union[Valid, Invalid]


@dataclass(frozen=True)
class LogAccessRequest:
    """Validated body of a log-access request."""
    app_name: str
    meta: Any = None


def validate_client_metadata(data: Any, path: str = "meta") -> ValidationResult:
    """
    Validate a client metadata object.

    Args:
        data: Decoded JSON value
        path: Prefix for error paths

    Returns:
        Valid(ClientMetadata) or Invalid(list of FieldError)
    """
    if not isinstance(data, Mapping):
        return Invalid([FieldError(path, "must be an object")])

    errors: List[FieldError] = []

    for section, keys in _STRING_SECTIONS:
        errors.extend(_check_section(data, section, keys, _is_string, "must be a string", path))

    for key in _STRING_FIELDS:
        if not _is_string(data.get(key)):
            errors.append(FieldError(f"{path}.{key}", "must be a string"))

    errors.extend(_check_section(data, "screen", _SCREEN_FIELDS, _is_number, "must be a number", path))

    if errors:
        return Invalid(errors)
    return Valid(ClientMetadata.from_dict(data))


def validate_log_access_body(body: Any) -> ValidationResult:
    """
    Validate a log-access request body: {appName, meta?}.

    Returns:
        Valid(LogAccessRequest) or Invalid(list of FieldError)
    """
    if not isinstance(body, Mapping):
        return Invalid([FieldError("body", "must be a JSON object")])

    errors: List[FieldError] = []
    app_name = body.get("appName")
    if not isinstance(app_name, str) or not app_name.strip():
        errors.append(FieldError("appName", "is required"))

    meta = None
    if body.get("meta") is not None:
        result = validate_client_metadata(body["meta"])
        if result.ok:
            meta = result.value
        else:
            errors.extend(result.errors)

    if errors:
        return Invalid(errors)
    return Valid(LogAccessRequest(app_name=app_name, meta=meta))


def validate_required_strings(body: Any, names: Tuple[str, ...]) -> ValidationResult:
    """Validate that each named field is a non-empty string; used by the contact form."""
    if not isinstance(body, Mapping):
        return Invalid([FieldError("body", "must be a JSON object")])

    for name in names:
        value = body.get(name)
        if not isinstance(value, str) or not value.strip():
            # Report the first missing field only, matching the contact form responses
            return Invalid([FieldError(name, "is required")])
    return Valid({name: body[name] for name in names})


def _check_section(data, section, keys, predicate, message, path) -> List[FieldError]:
    value = data.get(section)
    if not isinstance(value, Mapping):
        return [FieldError(f"{path}.{section}", "must be an object")]
    return [
        FieldError(f"{path}.{section}.{key}", message)
        for key in keys
        if not predicate(value.get(key))
    ]


def _is_string(value: Any) -> bool:
    return isinstance(value, str)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
