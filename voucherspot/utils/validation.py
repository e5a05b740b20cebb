from datetime import datetime

from voucherspot.errors import ValidationError


class Validator:
    """Collects field errors for one payload and raises them together."""

    def __init__(self, payload):
        self.payload = payload or {}
        self.errors = {}
        self.data = {}

    def _fail(self, field, message):
        self.errors.setdefault(field, []).append(message)

    def _present(self, field):
        value = self.payload.get(field)
        return value is not None and value != ""

    def required(self, *fields):
        for field in fields:
            if not self._present(field):
                self._fail(field, f"The {field} field is required.")
        return self

    def string(self, field, max_length=None, required=False):
        if not self._present(field):
            if required:
                self._fail(field, f"The {field} field is required.")
            return self
        value = str(self.payload[field]).strip()
        if max_length and len(value) > max_length:
            self._fail(field, f"The {field} may not be greater than {max_length} characters.")
            return self
        self.data[field] = value
        return self

    def integer(self, field, minimum=None, maximum=None, required=False):
        if not self._present(field):
            if required:
                self._fail(field, f"The {field} field is required.")
            return self
        try:
            value = int(str(self.payload[field]).strip())
        except (TypeError, ValueError):
            self._fail(field, f"The {field} must be an integer.")
            return self
        if minimum is not None and value < minimum:
            self._fail(field, f"The {field} must be at least {minimum}.")
        elif maximum is not None and value > maximum:
            self._fail(field, f"The {field} may not be greater than {maximum}.")
        else:
            self.data[field] = value
        return self

    def number(self, field, minimum=None, maximum=None, required=False):
        if not self._present(field):
            if required:
                self._fail(field, f"The {field} field is required.")
            return self
        try:
            value = float(self.payload[field])
        except (TypeError, ValueError):
            self._fail(field, f"The {field} must be a number.")
            return self
        if minimum is not None and value < minimum:
            self._fail(field, f"The {field} must be at least {minimum}.")
        elif maximum is not None and value > maximum:
            self._fail(field, f"The {field} may not be greater than {maximum}.")
        else:
            self.data[field] = value
        return self

    def one_of(self, field, choices, required=False, message=None):
        if not self._present(field):
            if required:
                self._fail(field, f"The {field} field is required.")
            return self
        value = self.payload[field]
        if value not in choices:
            self._fail(field, message or f"The selected {field} is invalid.")
        else:
            self.data[field] = value
        return self

    def date(self, field, required=False):
        if not self._present(field):
            if required:
                self._fail(field, f"The {field} field is required.")
            return self
        try:
            self.data[field] = parse_date(self.payload[field])
        except ValueError:
            self._fail(field, f"The {field} is not a valid date.")
        return self

    def boolean(self, field):
        if field in self.payload:
            self.data[field] = to_bool(self.payload[field])
        return self

    def check(self, condition, field, message):
        if not condition:
            self._fail(field, message)
        return self

    def validate(self):
        if self.errors:
            raise ValidationError(self.errors)
        return self.data


def parse_date(value):
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return datetime.fromisoformat(text)


def to_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")
