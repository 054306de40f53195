"""API router subpackage for the geometry converter.

Submodules:
    - convert: ``POST /convert`` endpoint orchestrating the
      validate, stage, convert, download and cleanup pipeline.
    - negotiation: Content type resolution and request validation that
      turns either accepted encoding into a ConversionRequest.
"""
