from .core import (  # noqa: F401
    parse_key_values,
    raise_error,
    warn,
)
