"""
JSON schema for the persisted dialogue blob.

Only the top-level shape is enforced here. A blob that fails this
schema is corrupt as a whole; individual node records are checked
one by one afterwards so a single bad node never sinks the graph.

"nodes" may also be an array of node records; an empty graph written
by a serializer that cannot tell an empty map from an empty list
arrives that way.
"""

BLOB_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Dialogue graph blob",
    "type": "object",
    "properties": {
        "meta": {
            "type": "object",
            "properties": {
                "version": {"type": ["string", "number"]},
                "created": {"type": "number"},
                "updated": {"type": "number"},
                "checksum": {"type": ["string", "null"]},
            },
        },
        "cfg": {
            "type": "object",
            "properties": {
                "exitLabel": {"type": "string"},
                "autosaveDebounceInterval": {"type": "number", "exclusiveMinimum": 0},
                "debounceDelay": {"type": "number", "exclusiveMinimum": 0},
            },
        },
        "nodes": {"type": ["object", "array"]},
    },
}
