"""Storage layer: path resolution, container mapping, stat cache and the S3 file backend."""
