"""
Shared, cross-cutting code for the API.

`core/` holds the small building blocks every feature relies on (settings,
DB pool wiring, column codecs). Keep feature-specific SQL and response
shaping in the corresponding feature package (e.g. `inscriptions/`).
"""
