from __future__ import annotations

_CONFIGURE_TIP = " Tip: Use the 'configure_gemini_token' tool to set a valid Gemini API key."


def _looks_like_auth_issue(text: str) -> bool:
    """Best-effort detection for credential or quota issues in upstream errors."""
    if not text:
        return False
    lower = text.lower()

    keywords = [
        # auth/credentials
        "api key",
        "api_key",
        "invalid key",
        "unauthorized",
        "unauthenticated",
        "permission",
        "permission_denied",
        "forbidden",
        "credentials",
        "401",
        "403",
        # billing/quota
        "billing",
        "quota",
        "resource_exhausted",
    ]

    return any(k in lower for k in keywords)


def augment_with_configure_tip(message: str) -> str:
    """Append a configuration tip to the message when it looks like an auth problem."""
    if not message:
        return message
    if _CONFIGURE_TIP.strip() in message:
        return message
    if _looks_like_auth_issue(message):
        return message.rstrip() + _CONFIGURE_TIP
    return message


__all__ = ["augment_with_configure_tip"]
