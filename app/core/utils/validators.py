from phonenumbers import parse, is_valid_number, NumberParseException, format_number, PhoneNumberFormat

DEFAULT_PHONE_REGION = "ID"


def normalize_phone_or_none(v: str | None, default_region: str | None = DEFAULT_PHONE_REGION) -> str | None:
    if v is None or not v.strip():
        return None
    try:
        num = parse(v, default_region)
    except NumberParseException:
        raise ValueError("Invalid phone number")
    if not is_valid_number(num):
        raise ValueError("Invalid phone number")
    return format_number(num, PhoneNumberFormat.E164)
