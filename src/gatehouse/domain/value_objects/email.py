"""A Value Object representing an email address in the domain.

This class encapsulates the format and length rules of an email address,
ensuring that any email in the domain is always in a valid state. As a Value
Object it is immutable, and equality is based on its normalized value, which
makes email comparison case-insensitive everywhere in the domain.
"""

import re
from dataclasses import dataclass
from typing import ClassVar

from structlog import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Email:
    """An immutable, self-validating email address.

    This Value Object enforces several business rules upon instantiation:
    - Is not blank.
    - Has a reasonable length.
    - Conforms to a basic ``local@domain.tld`` shape.
    - Is automatically trimmed and normalized to lowercase.

    Attributes:
        value: The normalized string representation of the email address.
    """

    value: str

    MAX_LENGTH: ClassVar[int] = 256
    EMAIL_PATTERN: ClassVar[re.Pattern] = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

    def __post_init__(self):
        """Performs validation and normalization after initialization."""
        if not isinstance(self.value, str):
            raise TypeError("Email value must be a string.")

        normalized_value = self.value.strip().lower()
        if not normalized_value:
            raise ValueError("Email cannot be empty.")
        object.__setattr__(self, "value", normalized_value)

        self._validate_length(normalized_value)
        self._validate_format(normalized_value)

    def _validate_length(self, value: str) -> None:
        if len(value) > self.MAX_LENGTH:
            raise ValueError(f"Email must not exceed {self.MAX_LENGTH} characters.")

    def _validate_format(self, value: str) -> None:
        if not self.EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email format.")

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Returns True when ``value`` would construct a valid Email."""
        try:
            cls(value)
        except (TypeError, ValueError):
            return False
        return True

    @property
    def domain(self) -> str:
        """Returns the domain part of the email address."""
        return self.value.rsplit("@", 1)[1]

    @property
    def local_part(self) -> str:
        """Returns the local part of the email address (before the '@')."""
        return self.value.rsplit("@", 1)[0]

    def mask_for_logging(self) -> str:
        """Returns a masked version of the email for safe logging.

        Example: 'us**@e*****.com'
        """
        local, domain_part = self.local_part, self.domain
        masked_local = f"{local[:2]}{'*' * max(len(local) - 2, 0)}"
        masked_domain = f"{domain_part[:1]}{'*' * max(len(domain_part) - 2, 0)}{domain_part[-1:]}"
        return f"{masked_local}@{masked_domain}"

    def __str__(self) -> str:
        return self.value
