"""Helpers for keeping personal data out of log lines."""


def mask_phone(phone: str | None) -> str:
    if not phone:
        return "***"
    return "***" + phone[-4:] if len(phone) > 4 else "***"
