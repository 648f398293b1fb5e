"""Decision Recorder Feature Flags

Telemetry file output starts TRUE; auto-verify starts FALSE.
"""

import os

# =============================================================================
# FEATURE FLAGS
# =============================================================================

# Append telemetry records to RECEIPTS_FILE
FEATURE_TELEMETRY_FILE_ENABLED = True

# Run the verifier against the anchor when the mission is sealed
FEATURE_AUTO_VERIFY_ON_SEAL = False


def is_feature_enabled(feature_name: str) -> bool:
    """Check if a feature is enabled.

    Supports environment variable override: DECISION_RECORDER_{FEATURE_NAME}=1

    Args:
        feature_name: Name of the feature flag

    Returns:
        True if enabled, False otherwise
    """
    env_var = f"DECISION_RECORDER_{feature_name.upper()}"
    env_value = os.environ.get(env_var)
    if env_value is not None:
        return env_value.lower() in ("1", "true", "yes", "on")

    return globals().get(feature_name, False)
