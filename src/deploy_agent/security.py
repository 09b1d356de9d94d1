"""Hashing, network matching and random token generation."""

import base64
import hashlib
import ipaddress
import secrets

import structlog

logger = structlog.get_logger(__name__)

# Character pools used for random tokens, ordered weakest first.
SECRET_POOLS: tuple[str, ...] = (
    "01234567",  # octal digits
    "89abcdef",  # completes hexadecimal
    "qwrtyuiopsghjklzxvnm",  # remaining lower case letters
    "QWERTYUIOPASDFGHJKLZXCVBNM",  # upper case letters
    "~!@#$%^&*()",  # symbols
)

TOKEN_LENGTH = 32


def compute_verification_hash(name: str, secret: str, token: str) -> str:
    """Return the hash a webhook caller presents instead of the raw token.

    SHA-256 over ``name + secret + token``, encoded with the URL-safe base64
    alphabet (padded).
    """
    digest = hashlib.sha256((name + secret + token).encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii")


def parse_network(cidr: str) -> ipaddress.IPv4Network | ipaddress.IPv6Network:
    """Parse ``address/prefix`` notation; host bits are cleared.

    Raises:
        ValueError: If ``cidr`` is not in CIDR notation or does not parse.
    """
    if "/" not in cidr:
        raise ValueError(f"{cidr!r} is not in CIDR notation")
    return ipaddress.ip_network(cidr, strict=False)


def network_contains(cidr: str, ip: str) -> bool:
    """Check whether ``ip`` falls inside the ``cidr`` network.

    IPv4-mapped IPv6 addresses (``::ffff:a.b.c.d``) are matched as IPv4.
    Any parse failure returns False.
    """
    try:
        network = parse_network(cidr)
        address = ipaddress.ip_address(ip)
    except ValueError as e:
        logger.debug("network_parse_failed", cidr=cidr, ip=ip, error=str(e))
        return False
    if address.version == 6 and address.ipv4_mapped is not None:
        address = address.ipv4_mapped
    return address in network


def generate_token(length: int = TOKEN_LENGTH, strength: int = len(SECRET_POOLS)) -> str:
    """Generate a random token from the first ``strength`` pools.

    Each selected pool contributes at least one character; the rest are drawn
    uniformly from the union of the selected pools.
    """
    if not 1 <= strength <= len(SECRET_POOLS):
        raise ValueError(f"strength must be between 1 and {len(SECRET_POOLS)}, got {strength}")
    if length < strength:
        raise ValueError(f"length must be at least {strength}, got {length}")

    pools = SECRET_POOLS[:strength]
    alphabet = "".join(pools)

    chars = [secrets.choice(pool) for pool in pools]
    chars.extend(secrets.choice(alphabet) for _ in range(length - strength))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
