"""Infrastructure Layer.

Adapters that perform I/O and return or consume domain Value Objects.
"""
