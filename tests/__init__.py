"""ADB Trigger test suite."""
