"""Unit tests for the Email value object."""

import pytest

from gatehouse.domain.value_objects.email import Email


@pytest.mark.unit
class TestEmail:
    def test_normalizes_case_and_whitespace(self):
        # Arrange / Act
        email = Email("  Alice.Smith@Example.COM ")

        # Assert
        assert email.value == "alice.smith@example.com"
        assert str(email) == "alice.smith@example.com"

    def test_equality_is_case_insensitive(self):
        assert Email("A@X.com") == Email("a@x.COM")
        assert hash(Email("A@X.com")) == hash(Email("a@x.com"))

    @pytest.mark.parametrize("raw", ["", "   "])
    def test_rejects_blank(self, raw):
        with pytest.raises(ValueError, match="Email cannot be empty"):
            Email(raw)

    @pytest.mark.parametrize("raw", ["no-at-sign", "two@@x.com", "a@nodot", "a b@x.com", "@x.com"])
    def test_rejects_malformed(self, raw):
        with pytest.raises(ValueError, match="Invalid email format"):
            Email(raw)

    def test_rejects_overlong(self):
        with pytest.raises(ValueError, match="must not exceed 256"):
            Email("a" * 250 + "@x.com" + "m" * 10)

    def test_is_valid(self):
        assert Email.is_valid("a@x.com")
        assert not Email.is_valid("nope")

    def test_parts(self):
        email = Email("user@example.com")
        assert email.local_part == "user"
        assert email.domain == "example.com"

    def test_mask_for_logging_hides_most_characters(self):
        masked = Email("username@example.com").mask_for_logging()
        assert masked.startswith("us")
        assert "username" not in masked
        assert "example" not in masked

    def test_is_immutable(self):
        email = Email("a@x.com")
        with pytest.raises(AttributeError):
            email.value = "b@x.com"  # type: ignore[misc]
