import logging
import sys
from types import MappingProxyType
from typing import Any, Mapping, Union

logger = logging.getLogger("eip712_signer")


def setup_logger(level: Union[str, int] = "INFO") -> logging.Logger:
    """
    Attach a stderr handler to the package logger and set its level.

    Safe to call more than once; the handler is only added the first time.
    """
    if not any(getattr(h, "_eip712_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        handler._eip712_handler = True
        logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    return logger


def to_hex(data: bytes) -> str:
    """0x-prefixed lowercase hex of raw bytes."""
    return "0x" + bytes(data).hex()


def to_jsonable(value: Any) -> Any:
    """Recursively convert a value tree to JSON types (bytes become 0x hex)."""
    if isinstance(value, (bytes, bytearray)):
        return to_hex(value)
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def freeze(value: Any) -> Any:
    """Read-only deep copy of a value tree: mappings become proxies, arrays tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    if isinstance(value, bytearray):
        return bytes(value)
    return value


def thaw(value: Any) -> Any:
    """Plain ``dict``/``list`` copy of a frozen value tree."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(v) for v in value]
    return value
