from __future__ import annotations

import contextvars

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")


def set_request_id(value: str) -> None:
    request_id_var.set(value or "")


def get_request_id() -> str:
    return request_id_var.get()
