"""
Form validation and sanitization.

Each rule reads one submitted field, normalizes it and either returns the
cleaned value or raises FieldError carrying the message and the value to echo
back on the redisplayed form. validate() runs a list of rules over the
submitted data and collects one error per failing field.
"""

import re
from datetime import date, datetime

from markupsafe import escape
from pydantic import ValidationError

from locallibrary.store import MAX_RECORD_ID


ALPHANUMERIC = re.compile(r"^[A-Za-z0-9]+$")


class FieldError(Exception):
    def __init__(self, message, value=None):
        super().__init__(message)
        self.message = message
        self.value = value


class FormErrors:
    """
    Ordered collection of field errors for one submission.

    Falsy when empty, so handlers can branch on ``if errors:``; iterating
    yields ``{"field": ..., "msg": ...}`` entries in rule order for templates.
    """

    def __init__(self):
        self._errors = []

    def add(self, field, message):
        self._errors.append({"field": field, "msg": message})

    def for_field(self, field):
        return [error["msg"] for error in self._errors if error["field"] == field]

    def __iter__(self):
        return iter(self._errors)

    def __len__(self):
        return len(self._errors)

    def __bool__(self):
        return bool(self._errors)

    def __repr__(self):
        return f"FormErrors({self._errors!r})"


def sanitize(value):
    """Escape HTML-significant characters (& < > " ')."""
    return str(escape(value))


def _text(raw):
    if raw is None:
        return ""
    return str(raw).strip()


class Required:
    """
    Required text field: trimmed, length-checked, escaped.

    With alphanumeric=True the trimmed value may only hold ASCII letters and
    digits.
    """

    def __init__(
        self,
        name,
        message,
        min_length=1,
        alphanumeric=False,
        alphanumeric_message=None,
    ):
        self.name = name
        self.message = message
        self.min_length = min_length
        self.alphanumeric = alphanumeric
        self.alphanumeric_message = alphanumeric_message or message

    def __call__(self, raw):
        value = _text(raw)
        cleaned = sanitize(value)
        if len(value) < self.min_length:
            raise FieldError(self.message, cleaned)
        if self.alphanumeric and not ALPHANUMERIC.match(value):
            raise FieldError(self.alphanumeric_message, cleaned)
        return cleaned


class Reference:
    """
    Identifier of another record picked from a select input.

    Only ASCII digits are accepted and the value must fit an INTEGER id.
    """

    def __init__(self, name, message):
        self.name = name
        self.message = message

    def __call__(self, raw):
        value = _text(raw)
        digits = value.isascii() and value.isdigit()
        if not digits or not 1 <= int(value) <= MAX_RECORD_ID:
            raise FieldError(self.message, sanitize(value))
        return int(value)


def parse_iso_date(value):
    try:
        return date.fromisoformat(value)
    except ValueError:
        # date-times are accepted and truncated to their calendar date
        return datetime.fromisoformat(value).date()


class OptionalDate:
    """Empty or missing is None; anything else must be an ISO-8601 date."""

    def __init__(self, name, message):
        self.name = name
        self.message = message

    def __call__(self, raw):
        value = _text(raw)
        if not value:
            return None
        try:
            return parse_iso_date(value)
        except ValueError:
            raise FieldError(self.message, sanitize(value)) from None


class Choice:
    def __init__(self, name, choices, message, default=None):
        self.name = name
        self.choices = tuple(choices)
        self.message = message
        self.default = default

    def __call__(self, raw):
        value = _text(raw)
        if not value and self.default is not None:
            return self.default
        if value not in self.choices:
            raise FieldError(self.message, sanitize(value))
        return value


class Many:
    """
    Multi-valued field such as a group of checkboxes.

    A missing field becomes an empty list and a single value a one-element
    list; each element is escaped.
    """

    many = True

    def __init__(self, name):
        self.name = name

    def __call__(self, raw):
        if raw is None:
            raw = []
        elif isinstance(raw, str):
            raw = [raw]
        return [sanitize(_text(item)) for item in raw]


def _read(data, rule):
    if getattr(rule, "many", False) and hasattr(data, "getlist"):
        return data.getlist(rule.name)
    return data.get(rule.name)


def validate(data, rules):
    """
    Apply rules to submitted form data.

    Args:
        data: Starlette FormData or any mapping of field name to raw value
        rules: rule objects, applied in order

    Returns:
        (values, errors): values holds an entry for every rule, the cleaned
        value when the field passed and the sanitized input when it failed;
        errors is a FormErrors, empty when the submission is acceptable
    """
    values = {}
    errors = FormErrors()
    for rule in rules:
        try:
            values[rule.name] = rule(_read(data, rule))
        except FieldError as exc:
            values[rule.name] = exc.value
            errors.add(rule.name, exc.message)
    return values, errors


def build_payload(schema, values, errors):
    """
    Build the typed payload for a submission that passed validate().

    Type errors reported by the pydantic schema are appended to errors under
    the form field name (schemas alias their fields to the form names), and
    None is returned.

    Args:
        schema: pydantic model of the create/update payload
        values: cleaned values from validate()
        errors: FormErrors to extend
    """
    try:
        return schema.model_validate(values)
    except ValidationError as exc:
        for error in exc.errors():
            field = str(error["loc"][0]) if error["loc"] else "__all__"
            errors.add(field, error["msg"])
        return None
