from __future__ import annotations

from fastapi import Request


def client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent")


def request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)
