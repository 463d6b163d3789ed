"""Input validation utilities."""


def validate_host(host: str) -> str:
    """Validate a host name.

    Args:
        host: The host name to validate

    Returns:
        Validated host name

    Raises:
        ValueError: If host name is invalid
    """
    if not host:
        raise ValueError("Host cannot be empty")

    # Basic hostname validation
    if len(host) > 253:
        raise ValueError(f"Host name too long: {len(host)} chars")

    # Check for suspicious characters that could enable injection
    suspicious_chars = ["/", "\\", ";", "&", "|", "$", "`", " ", "\n", "\r", "\x00"]
    for char in suspicious_chars:
        if char in host:
            raise ValueError(f"Host contains invalid characters: {host!r}")

    return host


def validate_port(port: str | int) -> int:
    """Validate a TCP port number.

    Raises:
        ValueError: If the port is not an integer in 1..65535
    """
    try:
        value = int(port)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid port: {port!r}") from e

    if not 0 < value < 65536:
        raise ValueError(f"Port out of range: {value}")
    return value
