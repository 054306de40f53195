"""Geometry Converter API package.

This package contains a small FastAPI service that converts geospatial
geometry files between OGR formats. Uploaded payloads are staged under a
single process-wide directory, handed to ``ogr2ogr`` and the converted file
is streamed back to the caller. Staged files are removed once the response
lifecycle ends, whether the conversion succeeded, failed or the client
went away.

- Accepts JSON bodies with a base64 payload or raw ``application/octet-stream``
  bodies with query parameters
- Runs ``ogr2ogr`` asynchronously with a bounded timeout
- Removes temporary artifacts exactly once per request

See module sub-docstrings for details on each pipeline stage.
"""
