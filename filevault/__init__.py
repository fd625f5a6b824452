"""Provider-agnostic file storage for local filesystems and S3."""
