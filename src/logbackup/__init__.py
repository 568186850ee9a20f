"""
LogBackup - Incremental Sanitized Log Backup

Copies application log files into a backup location line by line, masking
or removing sensitive fields and normalizing log levels, and resumes from
persisted byte offsets across restarts, truncation and rotation.
"""

__version__ = "0.1.0"
