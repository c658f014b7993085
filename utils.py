def clean_text(value: str | None) -> str:
    if value is None:
        return ""
    return value.strip()


def mask_api_key(api_key: str | None) -> str:
    if not api_key:
        return "<none>"
    if len(api_key) <= 8:
        return "***"
    return f"{api_key[:4]}...{api_key[-4:]}"
