from typing import Optional, Any, Dict


class AppError(Exception):
    """
    Base class for claude_sdk exceptions.
    """

    def __init__(
        self,
        error_code: int,
        message: str,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        retryable: bool = False,
    ):
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.context = context if context is not None else {}
        self.retryable = retryable
        super().__init__(
            f"Error Code: {error_code}, Message: {message}, Context: {self.context}"
        )

    def __str__(self):
        return f"{self.__class__.__name__}(error_code={self.error_code}, message='{self.message}', status_code={self.status_code}, context={self.context})"


class NoAPIKeyProvidedError(AppError):
    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=401010,
            message="No API key provided. Pass api_key or set ANTHROPIC_API_KEY.",
            context=context,
        )


class ClaudeHttpError(AppError):
    """Non-2xx response from the Messages API."""

    def __init__(
        self,
        url: str,
        status_code: int,
        error_type: Optional[str],
        error_message: str,
        error_code: int = 503130,
        retryable: bool = False,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.url = url
        self.error_type = error_type
        self.error_message = error_message
        _context = context.copy() if context else {}
        _context.update(
            {
                "url": url,
                "status_code": status_code,
                "error_type": error_type,
                "error_message": error_message,
            }
        )
        super().__init__(
            error_code=error_code,
            message=error_message,
            status_code=status_code,
            context=_context,
            retryable=retryable,
        )


class ClaudeApiError(ClaudeHttpError):
    def __init__(
        self,
        url: str,
        status_code: int,
        error_message: str,
        error_type: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            url=url,
            status_code=status_code,
            error_type=error_type,
            error_message=error_message,
            error_code=status_code * 1000 + 131,
            context=context,
        )


class InvalidRequestError(ClaudeHttpError):
    def __init__(
        self, url: str, error_message: str, context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            url=url,
            status_code=400,
            error_type="invalid_request_error",
            error_message=error_message,
            error_code=400132,
            context=context,
        )


class ClaudeAuthenticationError(ClaudeHttpError):
    def __init__(
        self,
        url: str,
        status_code: int,
        error_message: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            url=url,
            status_code=status_code,
            error_type="authentication_error",
            error_message=error_message,
            error_code=status_code * 1000 + 133,
            context=context,
        )


class ClaudeRateLimitedError(ClaudeHttpError):
    retry_after: Optional[float]

    def __init__(
        self,
        url: str,
        error_message: str,
        retry_after: Optional[float] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.retry_after = retry_after
        _context = context.copy() if context else {}
        _context["retry_after"] = retry_after
        super().__init__(
            url=url,
            status_code=429,
            error_type="rate_limit_error",
            error_message=error_message,
            error_code=429120,
            retryable=True,
            context=_context,
        )


class ClaudeServerError(ClaudeHttpError):
    def __init__(
        self,
        url: str,
        status_code: int,
        error_message: str,
        error_type: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            url=url,
            status_code=status_code,
            error_type=error_type,
            error_message=error_message,
            error_code=status_code * 1000 + 134,
            retryable=True,
            context=context,
        )


class StreamTransportError(AppError):
    """The byte source of a stream failed (connection reset, read timeout, bad encoding)."""

    def __init__(self, cause: BaseException, context: Optional[Dict[str, Any]] = None):
        self.cause = cause
        _context = context.copy() if context else {}
        _context.update(
            {
                "cause_type": type(cause).__name__,
                "cause": str(cause),
            }
        )
        super().__init__(
            error_code=503150,
            message=f"Stream transport failed: {cause}",
            context=_context,
            retryable=True,
        )
        self.__cause__ = cause


class StreamDecodeError(AppError):
    """A frame payload could not be decoded into an event."""

    def __init__(
        self,
        event_name: str,
        data: str,
        reason: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.event_name = event_name
        self.data = data
        self.reason = reason
        _context = context.copy() if context else {}
        _context.update(
            {
                "event_name": event_name,
                "data": data,
                "reason": reason,
            }
        )
        super().__init__(
            error_code=502151,
            message=f"Failed to decode event {event_name}: {reason}",
            context=_context,
        )


class StreamStateError(AppError):
    """Events arrived in an order that cannot be accumulated into a message."""

    def __init__(self, reason: str, context: Optional[Dict[str, Any]] = None):
        _context = context.copy() if context else {}
        _context["reason"] = reason
        super().__init__(
            error_code=502152,
            message=reason,
            context=_context,
        )


# Error kinds the API may send mid-stream that are worth retrying with a new request.
RETRYABLE_STREAM_ERROR_TYPES = frozenset({"overloaded_error", "api_error"})


class ClaudeStreamingError(AppError):
    def __init__(
        self,
        error_type: str,
        error_message: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.error_type = error_type
        self.error_message = error_message
        _context = context.copy() if context else {}
        _context.update(
            {
                "error_type": error_type,
                "error_message": error_message,
            }
        )
        super().__init__(
            error_code=503500,
            message=error_message,
            context=_context,
            retryable=error_type in RETRYABLE_STREAM_ERROR_TYPES,
        )


class ClaudeConnectionError(AppError):
    """The request could not be sent or the response headers never arrived."""

    def __init__(
        self, url: str, cause: BaseException, context: Optional[Dict[str, Any]] = None
    ):
        self.url = url
        self.cause = cause
        _context = context.copy() if context else {}
        _context.update(
            {
                "url": url,
                "cause_type": type(cause).__name__,
                "cause": str(cause),
            }
        )
        super().__init__(
            error_code=503135,
            message=f"Connection to {url} failed: {cause}",
            context=_context,
            retryable=True,
        )
        self.__cause__ = cause


class BatchNotReadyError(AppError):
    """Results were requested for a message batch that has not published them yet."""

    def __init__(
        self,
        batch_id: str,
        processing_status: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.batch_id = batch_id
        self.processing_status = processing_status
        _context = context.copy() if context else {}
        _context.update(
            {
                "batch_id": batch_id,
                "processing_status": processing_status,
            }
        )
        super().__init__(
            error_code=409160,
            message=f"Batch {batch_id} has no results yet (status: {processing_status})",
            context=_context,
        )
