"""Core Foundation Functions

Every other module imports from here. Foundation for:
- Dual hashing (SHA256 + BLAKE3)
- Telemetry receipt emission
- StopRule exception handling
"""

import hashlib
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import blake3

from config.features import is_feature_enabled

# Constants
RECEIPTS_FILE = Path(os.environ.get("RECEIPTS_FILE", "receipts.jsonl"))
TENANT_ID = os.environ.get("TENANT_ID", "edge-device-001")

# Global telemetry counter for ordering
_receipt_counter = 0


class StopRule(Exception):
    """Raised when stoprule triggers. Never catch silently.

    StopRules indicate a broken input contract. They emit an anomaly
    receipt before raising.
    """
    def __init__(self, message: str, metric: str = "unknown", action: str = "halt"):
        self.message = message
        self.metric = metric
        self.action = action
        super().__init__(message)


def dual_hash(data: bytes | str) -> str:
    """Compute SHA256:BLAKE3 dual hash. ALWAYS use this, never single hash.

    Args:
        data: Input bytes or string to hash

    Returns:
        String in format "sha256_hex:blake3_hex"

    Example:
        >>> dual_hash(b"test")
        '9f86d08....:4878ca04...'
    """
    if isinstance(data, str):
        data = data.encode('utf-8')

    sha256_hash = hashlib.sha256(data).hexdigest()
    blake3_hash = blake3.blake3(data).hexdigest()

    return f"{sha256_hash}:{blake3_hash}"


def split_dual_hash(value: str) -> tuple[str, str]:
    """Split a dual hash into its (sha256, blake3) halves."""
    sha256_hex, _, blake3_hex = value.partition(":")
    return sha256_hex, blake3_hex


def short_hash(value: str, width: int = 16) -> str:
    """Shorten both halves of a dual hash for display."""
    sha256_hex, blake3_hex = split_dual_hash(value)
    return f"{sha256_hex[:width]}:{blake3_hex[:width]}"


def emit_receipt(receipt_type: str, data: dict,
                 tenant_id: Optional[str] = None,
                 to_file: bool = True,
                 silent: bool = False) -> dict:
    """Emit a telemetry receipt. Every state change calls this.

    Args:
        receipt_type: Type of receipt (decision_receipt, anchor, anomaly, etc.)
        data: Receipt payload data
        tenant_id: Override default tenant ID
        to_file: Whether to append to receipts.jsonl
        silent: Whether to suppress stdout printing

    Returns:
        Complete receipt dict with ts, tenant_id, payload_hash
    """
    global _receipt_counter
    _receipt_counter += 1

    ts = datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')
    tid = tenant_id or data.get("tenant_id", TENANT_ID)

    receipt = {
        "receipt_type": receipt_type,
        "ts": ts,
        "tenant_id": tid,
        "sequence": _receipt_counter,
        **data
    }

    # Hash of the record without the hash itself
    data_for_hash = {k: v for k, v in receipt.items() if k != "payload_hash"}
    receipt["payload_hash"] = dual_hash(json.dumps(data_for_hash, sort_keys=True))

    receipt_json = json.dumps(receipt, sort_keys=True)

    if not silent:
        print(receipt_json, flush=True)

    if to_file and is_feature_enabled("FEATURE_TELEMETRY_FILE_ENABLED"):
        with open(RECEIPTS_FILE, "a") as f:
            f.write(receipt_json + "\n")

    return receipt


def emit_stoprule(e: Exception, metric: str, action: str = "halt") -> dict:
    """Emit anomaly receipt for a stoprule violation.

    Args:
        e: The exception that triggered the stoprule
        metric: The metric that violated
        action: Action to take (halt, skip_tick, alert)

    Returns:
        The anomaly receipt
    """
    return emit_receipt("anomaly", {
        "metric": metric,
        "classification": "violation",
        "action": action,
        "error": str(e)
    }, silent=True)


def load_receipts(file_path: Optional[Path] = None) -> list[dict]:
    """Load all telemetry receipts from the receipts file.

    Args:
        file_path: Path to receipts file, defaults to RECEIPTS_FILE

    Returns:
        List of receipt dicts
    """
    path = file_path or RECEIPTS_FILE
    receipts = []

    try:
        with open(path, 'r') as f:
            for line in f:
                line = line.strip()
                if line:
                    receipts.append(json.loads(line))
    except FileNotFoundError:
        pass

    return receipts


def get_receipt_count() -> int:
    """Get the current telemetry counter value."""
    return _receipt_counter


def reset_receipt_counter():
    """Reset the telemetry counter (for testing)."""
    global _receipt_counter
    _receipt_counter = 0
