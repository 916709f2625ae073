"""Primary keys for workflows, execution runs and run continuations."""

from cuid2 import Cuid

ID_LENGTH = 24

_generator = Cuid(length=ID_LENGTH)


def generate_cuid() -> str:
    """Return a new lowercase alphanumeric CUID2 of ID_LENGTH characters."""
    return _generator.generate()
