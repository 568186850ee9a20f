"""
Core business logic components.

This package contains the backup processing components:
- Masking engine for JSON log lines
- Checkpoint store (offset tracking)
- Source provider and backup sink
- Single-file pipeline and multi-file runner
- Background worker service
- Metrics and health checks
"""
