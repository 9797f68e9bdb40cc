"""
Helpers for MAC addresses and discovered host names.
"""
import random
import re
from typing import Optional

_MAC_RE = re.compile(r"^[0-9a-f]{12}$")
_INVALID_HOSTNAME_CHARS = re.compile(r"[^a-z0-9-]+")

ADJECTIVES = (
    "amber", "brave", "calm", "dusty", "eager", "fancy", "gentle", "happy",
    "icy", "jolly", "keen", "lively", "mellow", "noble", "odd", "proud",
    "quiet", "rapid", "shy", "tidy", "urban", "vivid", "witty", "young",
)

NOUNS = (
    "anvil", "badger", "cedar", "dune", "ember", "falcon", "glacier", "harbor",
    "island", "jaguar", "kettle", "lantern", "meadow", "nebula", "otter", "pine",
    "quartz", "river", "summit", "tundra", "valley", "walrus", "yarrow", "zephyr",
)


def normalize_mac(value: Optional[str]) -> Optional[str]:
    """
    Return the MAC address in lower case colon notation, or None if it is not a MAC.

    Accepts ``AA:BB:CC:DD:EE:FF``, ``aa-bb-cc-dd-ee-ff`` and ``aabb.ccdd.eeff``.
    """
    if not value:
        return None
    digits = re.sub(r"[^0-9a-fA-F]", "", str(value)).lower()
    if not _MAC_RE.match(digits):
        return None
    return ":".join(digits[i:i + 2] for i in range(0, 12, 2))


def normalize_hostname(value: str, prefix: str = "") -> str:
    """
    Turn an arbitrary fact value into a valid host name.

    Lower case, MAC separators and other invalid characters removed. The
    prefix is prepended when the result would start with a digit.
    """
    name = str(value).strip().lower().replace(":", "")
    name = _INVALID_HOSTNAME_CHARS.sub("-", name).strip("-")
    if not name or name[0].isdigit():
        name = f"{prefix}{name}"
    return name


def mac_name(mac: str, prefix: str) -> str:
    """``AA:BB:CC:DD:EE:FF`` with prefix ``mac`` gives ``macaabbccddeeff``."""
    return f"{prefix}{mac.replace(':', '').lower()}"


def random_name(prefix: str, seed: Optional[str] = None) -> str:
    """
    Build a readable random name such as ``mac-brave-otter-4821``.

    The same seed always produces the same name.
    """
    rng = random.Random(seed)
    parts = [rng.choice(ADJECTIVES), rng.choice(NOUNS), str(rng.randint(1000, 9999))]
    if prefix:
        parts.insert(0, prefix)
    return "-".join(parts)
