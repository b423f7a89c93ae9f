"""
HomeKit configuration module

Defines settings for the HAP-python accessory bridge that exposes Nest
cameras, plus pairing helpers (pincode, setup id, X-HM:// setup URI).
"""
import os
import random
import string
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Set

# Default HomeKit port (standard HAP port)
DEFAULT_HOMEKIT_PORT = 51826

DEFAULT_BRIDGE_NAME = "Nest Cam Bridge"
DEFAULT_MANUFACTURER = "Nest"
DEFAULT_PERSIST_DIR = "data/homekit"

# Bind to all interfaces by default
DEFAULT_BIND_ADDRESS = "0.0.0.0"

# HAP category for Bridge accessory
HOMEKIT_CATEGORY_BRIDGE = 2

# PIN codes HomeKit refuses
INVALID_PIN_PATTERNS: Set[str] = {
    # All same digits
    "000-00-000", "111-11-111", "222-22-222", "333-33-333",
    "444-44-444", "555-55-555", "666-66-666", "777-77-777",
    "888-88-888", "999-99-999",
    # Sequential patterns
    "123-45-678", "012-34-567", "234-56-789",
    # Common patterns
    "121-21-212", "123-12-312",
}

BASE36_CHARS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def is_valid_pincode(code: str) -> bool:
    """
    Validate a PIN code against HomeKit restrictions.

    Args:
        code: PIN code in XXX-XX-XXX format

    Returns:
        True if valid, False if malformed or a restricted pattern
    """
    if code in INVALID_PIN_PATTERNS:
        return False

    parts = code.split("-")
    if len(parts) != 3 or len(parts[0]) != 3 or len(parts[1]) != 2 or len(parts[2]) != 3:
        return False

    digits_only = code.replace("-", "")
    return digits_only.isdigit() and len(digits_only) == 8


def generate_pincode() -> str:
    """
    Generate a random 8-digit HomeKit pairing code in XXX-XX-XXX format.

    Returns:
        str: Validated pincode, e.g. "031-45-154"
    """
    for _ in range(100):
        code = f"{random.randint(0, 999):03d}-{random.randint(0, 99):02d}-{random.randint(0, 999):03d}"
        if is_valid_pincode(code):
            return code

    return "031-45-154"


def generate_setup_id() -> str:
    """Generate a 4-character uppercase alphanumeric Setup ID."""
    chars = string.ascii_uppercase + string.digits
    return ''.join(random.choice(chars) for _ in range(4))


def generate_setup_uri(setup_code: str, setup_id: str, category: int = HOMEKIT_CATEGORY_BRIDGE) -> str:
    """
    Generate the HomeKit Setup URI used for QR code pairing.

    The payload packs the setup code (27 bits), flags (4 bits, 0x2 = IP
    transport) and the accessory category (8 bits), base36 encoded and
    zero padded to 9 characters, followed by the setup id.

    Raises:
        ValueError: If setup_code is not XXX-XX-XXX or setup_id is not 4 chars
    """
    parts = setup_code.split("-")
    if len(parts) != 3 or not setup_code.replace("-", "").isdigit():
        raise ValueError(f"Invalid setup_code format: {setup_code}. Expected XXX-XX-XXX")

    if len(setup_id) != 4:
        raise ValueError(f"setup_id must be 4 characters, got {len(setup_id)}")

    code_int = int(setup_code.replace("-", ""))
    flags = 0x2
    payload = (code_int << 12) | (flags << 8) | (category & 0xFF)

    encoded = ""
    temp = payload
    while temp > 0:
        encoded = BASE36_CHARS[temp % 36] + encoded
        temp //= 36

    return f"X-HM://{encoded.zfill(9)}{setup_id}"


@dataclass
class HomekitConfig:
    """
    Configuration for the HomeKit accessory bridge.

    Attributes:
        enabled: Whether the bridge is started with the application
        port: HAP server port (default 51826)
        bridge_name: Display name for the bridge in the Home app
        manufacturer: Manufacturer shown on each camera accessory
        persist_dir: Directory for storing pairing state
        pincode: 8-digit pairing code in XXX-XX-XXX format
        bind_address: IP address the HAP server binds to
    """
    enabled: bool = False
    port: int = DEFAULT_HOMEKIT_PORT
    bridge_name: str = DEFAULT_BRIDGE_NAME
    manufacturer: str = DEFAULT_MANUFACTURER
    persist_dir: str = DEFAULT_PERSIST_DIR
    pincode: Optional[str] = None
    bind_address: str = DEFAULT_BIND_ADDRESS

    @property
    def persist_file(self) -> str:
        """Get the full path to the persistence file."""
        return os.path.join(self.persist_dir, "accessory.state")

    def ensure_persist_dir(self) -> None:
        """Create persistence directory if it doesn't exist."""
        Path(self.persist_dir).mkdir(parents=True, exist_ok=True)


def get_homekit_config() -> HomekitConfig:
    """
    Load HomeKit configuration from environment variables.

    Environment variables:
        HOMEKIT_ENABLED: Start the bridge (default: false)
        HOMEKIT_PORT: HAP server port (default: 51826)
        HOMEKIT_BRIDGE_NAME: Bridge display name
        HOMEKIT_MANUFACTURER: Manufacturer name (default: Nest)
        HOMEKIT_PERSIST_DIR: Directory for state persistence (default: data/homekit)
        HOMEKIT_PINCODE: Pairing code in XXX-XX-XXX format (generated if not set)
        HOMEKIT_BIND_ADDRESS: IP address to bind HAP server (default: 0.0.0.0)
    """
    return HomekitConfig(
        enabled=os.getenv("HOMEKIT_ENABLED", "false").lower() in ("true", "1", "yes"),
        port=int(os.getenv("HOMEKIT_PORT", str(DEFAULT_HOMEKIT_PORT))),
        bridge_name=os.getenv("HOMEKIT_BRIDGE_NAME", DEFAULT_BRIDGE_NAME),
        manufacturer=os.getenv("HOMEKIT_MANUFACTURER", DEFAULT_MANUFACTURER),
        persist_dir=os.getenv("HOMEKIT_PERSIST_DIR", DEFAULT_PERSIST_DIR),
        pincode=os.getenv("HOMEKIT_PINCODE"),
        bind_address=os.getenv("HOMEKIT_BIND_ADDRESS", DEFAULT_BIND_ADDRESS),
    )
