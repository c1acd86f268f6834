import json
from typing import Any, NamedTuple, Optional


class Decoded(NamedTuple):
    value: Any
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def or_default(self, default):
        return self.value if self.ok else default


def decode_json(raw: Optional[str], expected_type: type = list) -> Decoded:
    """Decode a JSON text column, reporting failures instead of hiding them."""
    if raw is None or raw == "":
        return Decoded(None, "empty")
    try:
        value = json.loads(raw)
    except (TypeError, ValueError) as e:
        return Decoded(None, f"invalid json: {e}")

    if not isinstance(value, expected_type):
        return Decoded(None, f"expected {expected_type.__name__}, got {type(value).__name__}")
    return Decoded(value)
