"""Unit tests for the request context value objects."""

import pytest

from gatehouse.domain.value_objects.request_context import (
    MAX_USER_AGENT_LENGTH,
    AuthenticationProvider,
    RequestContext,
)


@pytest.mark.unit
class TestRequestContext:
    def test_values_are_trimmed(self):
        context = RequestContext(ip_address=" 203.0.113.9 ", user_agent=" curl/8.0\n")
        assert context.ip_address == "203.0.113.9"
        assert context.user_agent == "curl/8.0"

    @pytest.mark.parametrize("blank", [None, "", "   "])
    def test_blank_values_become_none(self, blank):
        context = RequestContext(ip_address=blank, user_agent=blank)
        assert context == RequestContext()

    def test_long_user_agent_is_truncated(self):
        context = RequestContext(user_agent="x" * (MAX_USER_AGENT_LENGTH + 50))
        assert len(context.user_agent) == MAX_USER_AGENT_LENGTH

    def test_provider_values(self):
        assert [p.value for p in AuthenticationProvider] == ["local", "google", "mfa"]
        assert AuthenticationProvider("google") is AuthenticationProvider.GOOGLE
