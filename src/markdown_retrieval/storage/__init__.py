"""Index persistence helpers."""

from .capsule import decode_capsule, encode_capsule, read_capsule, write_capsule
from .index_file import index_from_dict, load_index, write_index

__all__ = [
    "decode_capsule",
    "encode_capsule",
    "index_from_dict",
    "load_index",
    "read_capsule",
    "write_capsule",
    "write_index",
]
