"""Password Value Object for domain modeling.

The value object encapsulates the password strength rules applied at
registration and password change, so they are enforced consistently across
the domain. Hashing itself is delegated to the password hashing port.
"""

import re
from dataclasses import dataclass, field
from typing import ClassVar


@dataclass(frozen=True)
class Password:
    """Password value object that enforces strength requirements.

    It follows the fail-fast principle by validating on construction.

    Security Requirements:
        - Minimum 12 characters
        - Maximum 128 characters
        - At least one uppercase letter
        - At least one lowercase letter
        - At least one digit
        - At least one special character

    Attributes:
        value: The raw password string (immutable, hidden from ``repr``)
    """

    value: str = field(repr=False)

    MIN_LENGTH: ClassVar[int] = 12
    MAX_LENGTH: ClassVar[int] = 128
    SPECIAL_CHARS: ClassVar[str] = "!@#$%^&*()_+-=[]{}|;:,.<>?\"'"

    def __post_init__(self) -> None:
        """Validate password on construction."""
        self._validate()

    def _validate(self) -> None:
        """Validate password against all strength requirements.

        Raises:
            ValueError: If password doesn't meet the requirements
        """
        if not self.value or not self.value.strip():
            raise ValueError("Password cannot be empty")

        if len(self.value) < self.MIN_LENGTH:
            raise ValueError(f"Password must be at least {self.MIN_LENGTH} characters long")

        if len(self.value) > self.MAX_LENGTH:
            raise ValueError(f"Password must not exceed {self.MAX_LENGTH} characters")

        if not re.search(r"[A-Z]", self.value):
            raise ValueError("Password must contain at least one uppercase letter")

        if not re.search(r"[a-z]", self.value):
            raise ValueError("Password must contain at least one lowercase letter")

        if not re.search(r"\d", self.value):
            raise ValueError("Password must contain at least one digit")

        if not any(char in self.SPECIAL_CHARS for char in self.value):
            raise ValueError("Password must contain at least one special character")

    def __str__(self) -> str:
        return "*" * len(self.value)
