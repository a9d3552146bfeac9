"""Authentication domain: value objects, events, the User aggregate and workflows."""
