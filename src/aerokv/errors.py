"""
AeroKV Client Error Types
"""

from typing import Optional, Any


class AeroKVError(Exception):
    """Base exception for all AeroKV client errors."""
    
    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
    
    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message
    
    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', code='{self.code}')"


class TypeNotSupported(AeroKVError):
    """Raised when a value or key cannot be encoded for the wire."""
    
    def __init__(self, message: str, value_type: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message, "TYPE_NOT_SUPPORTED", details)
        self.value_type = value_type


class ParameterError(AeroKVError):
    """Raised when an operation is used in a structurally invalid way."""
    
    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, "PARAMETER_ERROR", details)


class ParseError(AeroKVError):
    """Raised when a server response cannot be parsed."""
    
    def __init__(self, message: str, response: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message, "PARSE_ERROR", details)
        self.response = response


class ConnectionError(AeroKVError):
    """Raised when connection operations fail or an info value is missing."""
    
    def __init__(self, message: str, endpoint: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message, "CONNECTION_ERROR", details)
        self.endpoint = endpoint


class TimeoutError(AeroKVError):
    """Raised when operations timeout."""
    
    def __init__(self, message: str, timeout_ms: Optional[int] = None, details: Optional[Any] = None):
        super().__init__(message, "TIMEOUT_ERROR", details)
        self.timeout_ms = timeout_ms


class ConfigurationError(AeroKVError):
    """Raised when configuration is invalid."""
    
    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message, "CONFIGURATION_ERROR", details)
        self.field = field


class SerializationError(AeroKVError):
    """Raised when a particle cannot be decoded."""
    
    def __init__(self, message: str, data_type: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message, "SERIALIZATION_ERROR", details)
        self.data_type = data_type
