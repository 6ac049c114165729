# Utils package - Utility modules organized by domain
# Import from subpackages for convenience

from .parsing.json import load_payload

__all__ = [
    "load_payload",
]
