import contextvars

_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")
_subject: contextvars.ContextVar[str] = contextvars.ContextVar("subject", default="-")


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str:
    return _request_id.get()


def set_subject(email: str) -> None:
    _subject.set(email)


def get_subject() -> str:
    return _subject.get()


def clear_context() -> None:
    _request_id.set("-")
    _subject.set("-")
