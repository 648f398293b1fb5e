"""Demo scripts for the Decision Recorder."""
