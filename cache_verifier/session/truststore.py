"""Trust store lookup for per-service TLS material."""

from pathlib import Path
from typing import Union

from ..errors import ConfigurationError

# Candidate layouts inside the trust directory, in lookup order
TRUST_STORE_PATTERNS = ("{service}.pem", "{service}.crt", "{service}/ca.pem")


def find_trust_store(trust_store_dir: Union[str, Path], service_name: str) -> str:
    """
    Resolve the trust store file for a service.

    Args:
        trust_store_dir: Directory holding trust material for all services
        service_name: Logical service name the material was issued for

    Returns:
        Path of the first existing candidate, as a string

    Raises:
        ConfigurationError: If the directory or every candidate is missing
    """
    if not service_name:
        raise ConfigurationError("service name must not be empty")

    directory = Path(trust_store_dir)
    if not directory.is_dir():
        raise ConfigurationError(f"trust store directory not found: {directory}")

    for pattern in TRUST_STORE_PATTERNS:
        candidate = directory / pattern.format(service=service_name)
        if candidate.is_file():
            return str(candidate)

    raise ConfigurationError(
        f"no trust store for service {service_name!r} in {directory}"
    )
