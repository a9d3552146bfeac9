"""Composition root."""

from .auth_dependencies import AuthContainer, build_auth_container

__all__ = ["AuthContainer", "build_auth_container"]
