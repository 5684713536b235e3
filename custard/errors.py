import typing as t


class CustardError(Exception):
    pass


class HTTPException(CustardError):
    def __init__(self, status: int, message: str = "", code: int = 0) -> None:
        self.status = status
        self.message = message
        self.code = code

        text = f"{status}"
        if code:
            text += f" (error code: {code})"
        if message:
            text += f": {message}"

        super().__init__(text)


class BadRequest(HTTPException):
    pass


class Unauthorized(HTTPException):
    pass


class Forbidden(HTTPException):
    pass


class NotFound(HTTPException):
    pass


class MethodNotAllowed(HTTPException):
    pass


class RateLimited(HTTPException):
    def __init__(self, retry_after: float, message: str = "", code: int = 0) -> None:
        self.retry_after = retry_after
        super().__init__(429, message, code)


class ServerError(HTTPException):
    pass


class GatewayError(CustardError):
    pass


class TransportError(GatewayError):
    """The socket was closed or broke."""


class ReconnectWebSocket(TransportError):
    def __init__(self, *, resume: bool = True, backoff: bool = True, code: t.Optional[int] = None) -> None:
        self.resume = resume
        self.backoff = backoff
        self.code = code

        super().__init__(f"reconnect requested (resume={resume}, code={code})")


class ProtocolError(GatewayError):
    pass


class SessionInvalidated(GatewayError):
    def __init__(self, resumable: bool) -> None:
        self.resumable = resumable

        super().__init__(f"session invalidated (resumable={resumable})")


class RateLimitedIdentify(GatewayError):
    def __init__(self, retry_after: float) -> None:
        self.retry_after = retry_after

        super().__init__(f"identify rate limited, retrying in {retry_after:.2f}s")


class AuthenticationError(GatewayError):
    """The gateway refused the shard with a close code that must not be retried."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message

        super().__init__(f"Gateway closed {code}: {message}")
