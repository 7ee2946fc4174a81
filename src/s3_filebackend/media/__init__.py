"""Image handling integrations for the S3 file backend."""
