def strip_text(value: str | None) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    stripped = value.strip()
    return stripped or None


def lower_email(value: str | None) -> str | None:
    value = strip_text(value)
    return value.lower() if isinstance(value, str) else value
