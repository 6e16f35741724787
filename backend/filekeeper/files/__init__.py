"""File management module.

Uploaded blobs are stored flat in the upload directory under generated
names; their metadata (original name, extension, MIME type, size and the
generated name) is tracked in the DuckDB ``files`` table.
"""
