"""Google Identity Value Object.

Encapsulates the verified claims of a Google ID token after signature,
issuer and audience checks. Construction re-validates the claims that the
domain relies on, so a malformed assertion can never reach the workflow.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from gatehouse.domain.value_objects.email import Email


@dataclass(frozen=True)
class GoogleIdentity:
    """Verified Google account identity.

    Attributes:
        subject: Stable Google account id (``sub`` claim).
        email: Verified, normalized email address.
        name: Display name, falls back to the email local part.
        picture: Avatar URL, if any.
        hosted_domain: Google Workspace domain (``hd`` claim), if any.
        email_verified: Whether Google vouches for the email address.
    """

    subject: str
    email: Email
    name: str
    picture: Optional[str] = None
    hosted_domain: Optional[str] = None
    email_verified: bool = False

    def __post_init__(self):
        if not self.subject or not self.subject.strip():
            raise ValueError("Google identity must carry a subject")
        if not self.name or not self.name.strip():
            raise ValueError("Google identity must carry a name")

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "GoogleIdentity":
        """Build the identity from decoded ID-token claims.

        Raises:
            ValueError: If ``sub`` or ``email`` is missing or invalid.
        """
        if not claims:
            raise ValueError("Google claims cannot be empty")
        subject = claims.get("sub")
        if not subject:
            raise ValueError("Google claims must contain 'sub'")
        raw_email = claims.get("email")
        if not raw_email:
            raise ValueError("Google claims must contain 'email'")

        email = Email(raw_email)
        verified = claims.get("email_verified", False)
        if isinstance(verified, str):
            verified = verified.lower() == "true"

        return cls(
            subject=str(subject),
            email=email,
            name=claims.get("name") or email.local_part,
            picture=claims.get("picture"),
            hosted_domain=claims.get("hd"),
            email_verified=bool(verified),
        )

    @property
    def is_workspace_account(self) -> bool:
        return self.hosted_domain is not None
