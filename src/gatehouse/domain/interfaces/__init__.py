"""Domain interfaces (ports).

The domain layer depends only on these abstractions; the concrete adapters
live in ``gatehouse.infrastructure``. Import the submodules directly:

- ``clock``: the injected time source
- ``repositories``: persistence of the ``User`` aggregate
- ``services``: password hashing, MFA, tokens, Google identity, token
  stores and event publishing
"""
