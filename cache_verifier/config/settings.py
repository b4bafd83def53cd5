"""
Cache Verifier Configuration Settings

This module contains all configuration constants for the endpoint verifier.
Every value can be overridden through a CACHE_VERIFIER_* environment variable.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Verifier configuration settings."""

    # Credentials presented when authentication is enabled
    USERNAME: str = os.environ.get("CACHE_VERIFIER_USERNAME", "test")
    PASSWORD: str = os.environ.get("CACHE_VERIFIER_PASSWORD", "test")
    REALM: str = os.environ.get("CACHE_VERIFIER_REALM", "ApplicationRealm")
    SASL_MECHANISM: str = os.environ.get("CACHE_VERIFIER_SASL_MECHANISM", "DIGEST-MD5")
    SASL_QOP: str = os.environ.get("CACHE_VERIFIER_SASL_QOP", "auth-conf")

    # Connection settings
    CONNECT_TIMEOUT: float = float(os.environ.get("CACHE_VERIFIER_CONNECT_TIMEOUT", "5.0"))
    REQUEST_TIMEOUT: float = float(os.environ.get("CACHE_VERIFIER_REQUEST_TIMEOUT", "5.0"))
    READ_BUFFER_SIZE: int = 64 * 1024

    # Payload sizes used by the checks
    PAYLOAD_SIZE: int = 4096
    SUSTAINED_KEY_LENGTH: int = 1000

    # Upper bound on entries written while waiting for an eviction
    EVICTION_MAX_ITERATIONS: int = int(
        os.environ.get("CACHE_VERIFIER_EVICTION_MAX_ITERATIONS", "10000")
    )

    # Logging settings
    DEBUG: bool = os.environ.get("CACHE_VERIFIER_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("CACHE_VERIFIER_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
