"""Base class for dataclass-backed JSON receipt stores."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

R = TypeVar("R")


class BaseReceiptStore(Generic[R]):
    """JSON-file-backed receipt of the last operation.

    Subclasses must set class variables:

    - ``_receipt_type``: the dataclass used for the receipt schema
    - ``_json_keys``: mapping of dataclass field name to the key written
      to disk (the receipts use the camelCase names the provider reports)

    Optional class variables:

    - ``_log_label``: human label used in warning messages
    """

    _receipt_type: type[R]
    _json_keys: dict[str, str] = {}
    _log_label: str = "receipt"

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> R | None:
        """Return the stored receipt, or ``None`` if absent or unreadable."""
        if not self._path.is_file():
            return None
        try:
            raw = json.loads(self._path.read_text())
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning(
                "Failed to load %s from %s: %s", self._log_label, self._path, exc,
            )
            return None
        if not isinstance(raw, dict):
            logger.warning("Ignoring %s at %s: not a JSON object", self._log_label, self._path)
            return None
        return self._from_json(raw)

    def save(self, receipt: R) -> Path:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self.to_json(receipt), indent=2) + "\n")
        logger.info("Wrote %s to %s", self._log_label, self._path)
        return self._path

    def to_json(self, receipt: R) -> dict[str, Any]:
        data = asdict(receipt)  # type: ignore[call-overload]
        return {self._json_keys.get(k, k): v for k, v in data.items()}

    def _from_json(self, raw: dict[str, Any]) -> R:
        kwargs: dict[str, Any] = {}
        for f in fields(self._receipt_type):  # type: ignore[arg-type]
            key = self._json_keys.get(f.name, f.name)
            if key in raw:
                kwargs[f.name] = raw[key]
        return self._receipt_type(**kwargs)
