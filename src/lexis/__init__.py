"""lexis: spaced-repetition vocabulary review."""

from lexis.consts import VERSION

__version__ = VERSION
