"""
Access logging for the digest system.

Provides the record model, ingestion validation, configuration, the error
taxonomy and the DynamoDB-backed record store.
"""

from .config import DigestConfig, SmtpSettings, load_config, configure_logging
from .errors import (
    DigestError,
    ValidationError,
    ConfigurationError,
    FetchError,
    StoreError,
    RenderError,
    DeliveryError,
    UnknownError,
)
from .schema import AccessRecord, ClientMetadata, BrowserInfo, OsInfo, DeviceInfo, ScreenInfo
from .store import AccessLogStore, is_local_traffic
from .validation import (
    FieldError,
    Valid,
    Invalid,
    LogAccessRequest,
    validate_client_metadata,
    validate_log_access_body,
    validate_required_strings,
)

__all__ = [
    'DigestConfig',
    'SmtpSettings',
    'load_config',
    'configure_logging',
    'DigestError',
    'ValidationError',
    'ConfigurationError',
    'FetchError',
    'StoreError',
    'RenderError',
    'DeliveryError',
    'UnknownError',
    'AccessRecord',
    'ClientMetadata',
    'BrowserInfo',
    'OsInfo',
    'DeviceInfo',
    'ScreenInfo',
    'AccessLogStore',
    'is_local_traffic',
    'FieldError',
    'Valid',
    'Invalid',
    'LogAccessRequest',
    'validate_client_metadata',
    'validate_log_access_body',
    'validate_required_strings',
]
