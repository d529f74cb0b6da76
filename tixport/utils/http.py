"""HTTP response helpers for consistent caching behaviour."""

from fastapi import Response


def set_private_no_store(response: Response) -> None:
    """Prevent caching of responses tied to one caller (location, checkout quotes)."""

    response.headers["Cache-Control"] = "private, no-store, max-age=0"
    existing_vary = response.headers.get("Vary")
    tokens = [token.strip() for token in (existing_vary or "").split(",") if token.strip()]
    if not any(token.lower() == "x-forwarded-for" for token in tokens):
        tokens.append("X-Forwarded-For")
    response.headers["Vary"] = ", ".join(tokens)
