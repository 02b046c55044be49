"""
Request validation and normalization helpers.

Everything here is synchronous and free of I/O: route handlers and services
run these before touching the database so a rejected request never leaves a
partial write behind. Validators collect every violation and raise a single
ValidationError carrying all messages.
"""

import json
import math
from dataclasses import dataclass, asdict
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from email_validator import EmailNotValidError, validate_email

from listing_api.models.flat import Currency
from listing_api.models.question import SUPPORTED_LANGUAGE_IDS, LANGUAGE_TIPS
from listing_api.utils.exceptions import ValidationError


MIN_PASSWORD_LENGTH = 6
MIN_AGE = 0
MAX_AGE = 150

# Price columns are Numeric(12, 2)
MAX_PRICE = Decimal("9999999999.99")

ALLOWED_CURRENCIES = [currency.value for currency in Currency]

USER_PATCH_FIELDS = ["age", "email", "first_name", "last_name", "birth_date", "address", "password"]
INFO_CARD_PATCH_FIELDS = ["status", "image_data", "category_id_list", "details"]
PRODUCT_PATCH_FIELDS = ["name", "price"]

# Accepted spellings for flattened address fields, in priority order
ADDRESS_ALIASES = {
    "street": ("street", "address_street", "addr_street"),
    "city": ("city", "address_city", "addr_city"),
    "state": ("state", "address_state", "addr_state"),
    "zip": ("zip", "address_zip", "addr_zip"),
}


# Field allow-list

def filter_allowed_fields(data: Mapping[str, Any], allowed: Iterable[str]) -> Dict[str, Any]:
    """
    Return a copy of data holding only the allowed keys.

    Values pass through untouched. Unknown keys are dropped silently.
    """
    allowed_keys = set(allowed)
    return {key: value for key, value in data.items() if key in allowed_keys}


# Numbers

def coerce_number(value: Any) -> Optional[float]:
    """
    Coerce a JSON or form value to a finite number.

    Returns None for booleans, blanks and anything non-numeric.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def coerce_int(value: Any) -> Optional[int]:
    """Coerce to an integer; fractional numbers are rejected."""
    number = coerce_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def parse_decimal(value: Any, field: str) -> Decimal:
    """Parse a monetary amount or raise ValidationError naming the field."""
    number = coerce_number(value)
    if number is None:
        raise ValidationError(f"{field} must be a number")
    try:
        return Decimal(str(value).strip()) if isinstance(value, str) else Decimal(str(number))
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")


def parse_price(value: Any) -> Decimal:
    """Parse a price that fits the stored precision: non-negative, two decimals."""
    price = parse_decimal(value, "price")
    if price < 0:
        raise ValidationError("price must not be negative")
    if price.quantize(Decimal("0.01")) > MAX_PRICE:
        raise ValidationError(f"price must not exceed {MAX_PRICE}")
    return price


# Currency

def normalize_currency(value: Any) -> Optional[str]:
    """
    Trim and upper-case a currency code.

    Returns None when no code was given so the caller can keep its default.

    Raises:
        ValidationError: For a non-empty code outside the supported set
    """
    if value is None:
        return None
    code = str(value).strip().upper()
    if not code:
        return None
    if code not in ALLOWED_CURRENCIES:
        raise ValidationError(f"Invalid currency. Allowed: {', '.join(ALLOWED_CURRENCIES)}")
    return code


# Address

@dataclass
class Address:
    """Canonical flat address. Only street is required when creating a flat."""

    street: Optional[Any] = None
    city: Optional[Any] = None
    state: Optional[Any] = None
    zip: Optional[Any] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Address":
        def trim(value):
            return value.strip() if isinstance(value, str) else value

        return cls(
            street=trim(data.get("street")),
            city=trim(data.get("city")),
            state=trim(data.get("state")),
            zip=trim(data.get("zip")),
        )

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def present_fields(self) -> Dict[str, Any]:
        """Components that were actually supplied."""
        return {key: value for key, value in self.as_dict().items() if value is not None}


def _decode_nested_address(payload: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    raw = payload.get("address")
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            return None
        return parsed if isinstance(parsed, dict) else None
    if isinstance(raw, dict):
        return raw
    return None


def _decode_flattened_address(payload: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    components = {}
    for component, aliases in ADDRESS_ALIASES.items():
        components[component] = next(
            (payload[alias] for alias in aliases if payload.get(alias) is not None),
            None,
        )
    if not any(components.values()):
        return None
    return components


def _decode_legacy_location(payload: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    location = payload.get("location")
    if not location:
        return None
    return {"street": str(location)}


ADDRESS_DECODERS: List[Callable[[Mapping[str, Any]], Optional[Mapping[str, Any]]]] = [
    _decode_nested_address,
    _decode_flattened_address,
    _decode_legacy_location,
]


def normalize_address(payload: Mapping[str, Any]) -> Optional[Address]:
    """
    Decode an address from any of the shapes clients send.

    Shapes are tried in order: a nested object (or its JSON string form,
    parsed leniently), flattened fields under their aliases, then the legacy
    single "location" string mapped onto street.

    Returns:
        Address with trimmed strings, or None when no shape matched
    """
    for decode in ADDRESS_DECODERS:
        decoded = decode(payload)
        if decoded is not None:
            return Address.from_mapping(decoded)
    return None


def is_address_clear_request(payload: Mapping[str, Any]) -> bool:
    """True when the client explicitly sent a null address."""
    if "address" not in payload:
        return False
    raw = payload["address"]
    return raw is None or (isinstance(raw, str) and raw.strip() == "null")


# Translations

def validate_translations(items: Any) -> List[Dict[str, Any]]:
    """
    Validate a question's translation list.

    Each entry needs a numeric, supported language_id that is unique in the
    list, plus non-empty question and answer text. A repeated language id is
    reported at its second occurrence.

    Returns:
        Normalized translations with integer language ids and trimmed text

    Raises:
        ValidationError: With every violation found, prefixed by entry index
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("translations array is required and must not be empty")

    errors: List[str] = []
    normalized: List[Dict[str, Any]] = []
    seen = set()

    for index, item in enumerate(items):
        prefix = f"translations[{index}]"
        if not isinstance(item, dict):
            errors.append(f"{prefix}: Each translation must be an object")
            continue

        language_id = coerce_number(item.get("language_id"))
        if language_id is None:
            errors.append(f"{prefix}: Each translation must include a numeric language_id (1, 2 or 3)")
        elif language_id not in SUPPORTED_LANGUAGE_IDS:
            supported = ", ".join(str(i) for i in SUPPORTED_LANGUAGE_IDS)
            errors.append(f"{prefix}: language_id must be one of: {supported} ({LANGUAGE_TIPS})")
        elif language_id in seen:
            errors.append(f"{prefix}: Duplicate language_id in translations is not allowed")
        else:
            seen.add(language_id)

        question = item.get("question")
        answer = item.get("answer")
        if not (isinstance(question, str) and question.strip()) or not (isinstance(answer, str) and answer.strip()):
            errors.append(f"{prefix}: Each translation must have question and answer")
            continue

        if language_id is not None:
            normalized.append({
                "language_id": int(language_id),
                "question": question.strip(),
                "answer": answer.strip(),
            })

    if errors:
        raise ValidationError.from_messages(errors)
    return normalized


def validate_language_id(value: Any) -> int:
    """Validate a single language id query value."""
    language_id = coerce_int(value)
    if language_id is None or language_id not in SUPPORTED_LANGUAGE_IDS:
        supported = ", ".join(str(i) for i in SUPPORTED_LANGUAGE_IDS)
        raise ValidationError(f"language_id must be one of: {supported} ({LANGUAGE_TIPS})")
    return language_id


# Users

def is_valid_email(value: str) -> bool:
    """Syntax-only check; the domain is not resolved."""
    try:
        validate_email(value, check_deliverability=False, test_environment=True, globally_deliverable=False)
    except EmailNotValidError:
        return False
    return True


def _parse_birth_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def _non_blank(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def validate_registration(payload: Mapping[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
    """
    Validate raw registration fields, collecting every violation.

    Presence checks run first, then the normalized email is matched against
    a mail shape and the coerced age against 0-150. When no birth date is
    given one is synthesized as January 1st of (current year - floor(age)).

    Returns:
        Cleaned user data with lower-cased email, trimmed names and address,
        integer age and a birth date

    Raises:
        ValidationError: Carrying all collected messages
    """
    today = today or date.today()
    errors: List[str] = []

    email = payload.get("email")
    address = payload.get("address")
    age = payload.get("age")
    first_name = payload.get("first_name")
    last_name = payload.get("last_name")
    password = payload.get("password")

    if not _non_blank(email):
        errors.append("email is required")
    if not _non_blank(address):
        errors.append("address is required")
    if age is None or (isinstance(age, str) and not age.strip()):
        errors.append("age is required")
    if not _non_blank(first_name):
        errors.append("first_name is required")
    if not _non_blank(last_name):
        errors.append("last_name is required")
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"password is required and must be at least {MIN_PASSWORD_LENGTH} characters")

    normalized_email = email.strip().lower() if isinstance(email, str) else None
    if normalized_email and not is_valid_email(normalized_email):
        errors.append("email is invalid")

    age_number = coerce_number(age)
    if age is not None and not (isinstance(age, str) and not age.strip()):
        if age_number is None or not MIN_AGE <= age_number <= MAX_AGE:
            errors.append(f"age must be a number between {MIN_AGE} and {MAX_AGE}")

    birth_date = None
    raw_birth_date = payload.get("birth_date")
    if raw_birth_date not in (None, ""):
        birth_date = _parse_birth_date(raw_birth_date)
        if birth_date is None:
            errors.append("birth_date must be a valid ISO date")

    if errors:
        raise ValidationError.from_messages(errors)

    whole_age = math.floor(age_number)
    if birth_date is None:
        birth_date = date(today.year - whole_age, 1, 1)

    return {
        "email": normalized_email,
        "address": address.strip(),
        "age": whole_age,
        "first_name": first_name.strip(),
        "last_name": last_name.strip(),
        "password": password,
        "birth_date": birth_date,
    }


def validate_user_update(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Type-check an allow-listed user patch.

    Only fields present in data are checked and returned. Password stays
    plain here; hashing is the caller's job.

    Raises:
        ValidationError: Carrying all collected messages
    """
    errors: List[str] = []
    cleaned: Dict[str, Any] = {}

    if "email" in data:
        email = data["email"]
        normalized = email.strip().lower() if isinstance(email, str) else ""
        if not is_valid_email(normalized):
            errors.append("email is invalid")
        else:
            cleaned["email"] = normalized

    for field in ("first_name", "last_name", "address"):
        if field in data:
            if not _non_blank(data[field]):
                errors.append(f"{field} must be a non-empty string")
            else:
                cleaned[field] = data[field].strip()

    if "age" in data:
        age_number = coerce_number(data["age"])
        if age_number is None or not MIN_AGE <= age_number <= MAX_AGE:
            errors.append(f"age must be a number between {MIN_AGE} and {MAX_AGE}")
        else:
            cleaned["age"] = math.floor(age_number)

    if "birth_date" in data:
        birth_date = _parse_birth_date(data["birth_date"])
        if birth_date is None:
            errors.append("birth_date must be a valid ISO date")
        else:
            cleaned["birth_date"] = birth_date

    if "password" in data:
        password = data["password"]
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            errors.append(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
        else:
            cleaned["password"] = password

    if errors:
        raise ValidationError.from_messages(errors)
    return cleaned


# InfoCards

def parse_info_card_id(value: Any) -> int:
    """Parse a numeric InfoCard business id."""
    card_id = coerce_int(value)
    if card_id is None:
        raise ValidationError("InfoCard id is required and must be a number")
    return card_id


def normalize_category_ids(values: Any) -> List[int]:
    """Coerce a category id list to integers."""
    if values is None:
        return []
    if not isinstance(values, list):
        raise ValidationError("category_id_list must be an array of numbers")

    category_ids = []
    for value in values:
        category_id = coerce_int(value)
        if category_id is None:
            raise ValidationError("category_id_list must be an array of numbers")
        category_ids.append(category_id)
    return category_ids


def normalize_info_card_details(details: Any, info_card_id: int) -> List[Dict[str, Any]]:
    """
    Normalize InfoCard detail records.

    Each detail defaults its info_card_id to the parent's and its status to
    True. Language ids must be unique across the list.

    Raises:
        ValidationError: With every violation found
    """
    if details is None:
        return []
    if not isinstance(details, list):
        raise ValidationError("details must be an array")

    errors: List[str] = []
    normalized: List[Dict[str, Any]] = []
    seen = set()

    for index, detail in enumerate(details):
        prefix = f"details[{index}]"
        if not isinstance(detail, dict):
            errors.append(f"{prefix}: each detail must be an object")
            continue

        language_id = coerce_int(detail.get("language_id"))
        if language_id is None:
            errors.append(f"{prefix}: language_id must be a number")
        elif language_id in seen:
            errors.append(f"{prefix}: Duplicate language_id in details is not allowed")
        else:
            seen.add(language_id)

        parent_id = detail.get("info_card_id")
        status = detail.get("status")
        normalized.append({
            "info_card_detail_id": coerce_int(detail.get("info_card_detail_id")),
            "info_card_id": coerce_int(parent_id) if parent_id is not None else info_card_id,
            "language_id": language_id,
            "title": detail.get("title"),
            "sub_title": detail.get("sub_title"),
            "status": status if isinstance(status, bool) else True,
        })

    if errors:
        raise ValidationError.from_messages(errors)
    return normalized


# Pagination

def parse_pagination(limit: Any, skip: Any, default_limit: int, max_limit: int) -> Tuple[int, int]:
    """Clamp limit/skip query values into a safe range."""
    limit_value = coerce_int(limit)
    skip_value = coerce_int(skip)
    if limit_value is None or limit_value <= 0:
        limit_value = default_limit
    if skip_value is None or skip_value < 0:
        skip_value = 0
    return min(limit_value, max_limit), skip_value
