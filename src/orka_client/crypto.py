"""Age encryption for secrets stored in profile files."""

import base64
from pathlib import Path

import pyrage

AGE_PREFIX = "AGE:"


def is_encrypted(value: str) -> bool:
    """Check if a value is age-encrypted."""
    return value.startswith(AGE_PREFIX)


class SecretBox:
    """Encrypt and decrypt profile secrets with a local age identity.

    The x25519 identity is created on first use and stored next to the
    profile file, readable by the owner only.
    """

    def __init__(self, identity_file: Path) -> None:
        self.identity_file = identity_file
        self._identity: pyrage.x25519.Identity | None = None

    def _load_identity(self) -> pyrage.x25519.Identity:
        if self._identity is not None:
            return self._identity
        if self.identity_file.exists():
            identity = pyrage.x25519.Identity.from_str(self.identity_file.read_text().strip())
        else:
            self.identity_file.parent.mkdir(parents=True, exist_ok=True)
            identity = pyrage.x25519.Identity.generate()
            self.identity_file.write_text(str(identity))
            self.identity_file.chmod(0o600)
        self._identity = identity
        return identity

    def encrypt(self, value: str) -> str:
        """Encrypt a plaintext value. Returns AGE:base64... string."""
        if is_encrypted(value):
            return value
        recipient = self._load_identity().to_public()
        encrypted = pyrage.encrypt(value.encode(), [recipient])
        return AGE_PREFIX + base64.b64encode(encrypted).decode()

    def decrypt(self, value: str) -> str:
        """Decrypt an AGE:-prefixed value. Returns plaintext."""
        if not is_encrypted(value):
            return value
        raw = base64.b64decode(value[len(AGE_PREFIX):])
        return pyrage.decrypt(raw, [self._load_identity()]).decode()
