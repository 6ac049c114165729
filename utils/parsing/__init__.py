# Parsing subpackage - lenient decoding of external payloads
from .json import load_payload

__all__ = [
    "load_payload",
]
