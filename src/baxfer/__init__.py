"""baxfer - sync backup files to object storage and SFTP."""

__version__ = "0.3.0"
