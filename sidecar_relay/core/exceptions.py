from typing import Optional, Dict, Any


class AppException(Exception):
    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class SinkError(AppException):
    pass


class SyslogAddressError(SinkError):
    def __init__(self, address: str, message: str):
        super().__init__(
            f"Invalid syslog address '{address}': {message}",
            "SYSLOG_ADDRESS_INVALID",
            {"address": address}
        )


class SyslogHookError(SinkError):
    def __init__(self, address: str, message: str):
        super().__init__(
            f"Unable to create syslog hook for '{address}': {message}",
            "SYSLOG_HOOK_ERROR",
            {"address": address}
        )


class StreamReadError(AppException):
    def __init__(self, stream: str, message: str, code: str = "STREAM_READ_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code, {"stream": stream, **(details or {})})


class LineTooLongError(StreamReadError):
    def __init__(self, stream: str, limit: int):
        super().__init__(
            stream,
            f"line exceeds {limit} bytes",
            "LINE_TOO_LONG",
            {"limit": limit}
        )


class ResourceNotFoundError(AppException):
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id}
        )


class ExternalServiceError(AppException):
    pass


class DockerConnectionError(ExternalServiceError):
    def __init__(self, message: str = "Failed to connect to Docker daemon"):
        super().__init__(message, "DOCKER_CONNECTION_ERROR")


class DockerOperationError(ExternalServiceError):
    def __init__(self, operation: str, message: str):
        super().__init__(
            f"Docker operation '{operation}' failed: {message}",
            "DOCKER_OPERATION_ERROR",
            {"operation": operation}
        )
