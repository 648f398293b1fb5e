"""Decision Recorder configuration: constants and feature flags."""
